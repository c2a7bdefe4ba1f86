# app/services/poll_settlement_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.errors import NoVotesError, PollNotClosedError, SettlementError
from app.core.money import cents
from app.models.enums import PollStatus
from app.models.poll import Poll
from app.models.poll_settlement import PollSettlement
from app.schemas.settlement import PayoutInstruction, SettlementMode, SettlementPreview, SettlementResult
from app.services.ledger_source import LedgerSource, SqlLedgerSource
from app.services.preview_service import preview_settlement
from app.services.settlement_engine import settle
from app.services.settlement_report_service import payout_instructions, verify_digest

logger = logging.getLogger(__name__)


class PollSettlementService:
    """
    Host-side settlement: load a closed poll's ledger, run the pure engine
    once, and store the result under the poll's unique settlement marker.
    Moving funds is the payout executor's job; this service only hands it
    the instructions.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    # ─────────────────────────────────────────────
    # Internal helpers
    # ─────────────────────────────────────────────

    def _get_existing(self, db: Session, poll_id: str) -> Optional[PollSettlement]:
        return db.execute(
            select(PollSettlement).where(PollSettlement.poll_id == poll_id)
        ).scalar_one_or_none()

    def _source(self, db: Session, source: Optional[LedgerSource]) -> LedgerSource:
        return source if source is not None else SqlLedgerSource(db)

    # ─────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────

    def settle_poll(
        self,
        db: Session,
        *,
        poll_id: str,
        settled_by: Optional[str] = None,
        source: Optional[LedgerSource] = None,
    ) -> PollSettlement:
        """
        Settles a poll at most once. A repeated call returns the stored row.

        Raises PollNotFoundError / PollNotClosedError for polls that cannot
        be settled yet, and lets NoVotesError / InvalidLedgerError through
        with the poll left unsettled.
        """

        # Idempotency
        existing = self._get_existing(db, poll_id)
        if existing:
            logger.info("[settlement] poll=%s already settled digest=%s", poll_id, existing.digest)
            return existing

        ledger = self._source(db, source).load_ledger(poll_id)
        if not ledger.is_closed:
            raise PollNotClosedError(poll_id)

        rate = ledger.commission_rate
        if rate is None:
            rate = self.settings.default_house_commission_rate

        try:
            result = settle(ledger.records, rate, valid_option_ids=ledger.option_ids)
        except NoVotesError:
            logger.warning("[settlement] poll=%s has no votes; left unsettled", poll_id)
            raise
        except SettlementError as exc:
            logger.warning("[settlement] poll=%s rejected: %s", poll_id, exc)
            raise

        row = PollSettlement(
            poll_id=poll_id,
            mode=result.mode.value,
            winning_option_ids=list(result.winning_option_ids),
            total_bet_amount=result.total_bet_amount,
            total_commission_cents=cents(result.total_commission),
            payout_pool_cents=cents(result.payout_pool),
            total_payout_cents=cents(result.total_actual_payout),
            winner_count=result.winner_count,
            loser_count=result.loser_count,
            result_json=result.model_dump(mode="json", by_alias=True),
            digest=result.digest,
            settled_by=settled_by,
        )

        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            # Another worker stored the marker first
            db.rollback()
            existing = self._get_existing(db, poll_id)
            if existing is None:
                raise
            logger.info("[settlement] poll=%s settled concurrently; using stored row", poll_id)
            return existing

        db.refresh(row)
        logger.info(
            "[settlement] poll=%s mode=%s total_bet=%s commission=%s payout=%s digest=%s",
            poll_id,
            row.mode,
            result.total_bet_amount,
            result.total_commission,
            result.total_actual_payout,
            row.digest,
        )
        return row

    def load_result(self, row: PollSettlement) -> SettlementResult:
        result = SettlementResult.model_validate(row.result_json)
        if not verify_digest(result):
            raise SettlementError(f"Stored settlement for poll {row.poll_id} fails digest check.")
        return result

    def payouts_for(self, db: Session, *, poll_id: str) -> List[PayoutInstruction]:
        row = self._get_existing(db, poll_id)
        if not row:
            raise SettlementError(f"Poll {poll_id} is not settled.")
        return payout_instructions(self.load_result(row))

    def preview_poll(self, db: Session, *, poll_id: str) -> SettlementPreview:
        ledger = SqlLedgerSource(db).load_ledger(poll_id)
        rate = ledger.commission_rate
        if rate is None:
            rate = self.settings.default_house_commission_rate
        return preview_settlement(
            ledger.records,
            rate,
            valid_option_ids=ledger.option_ids,
            minimum_bet=ledger.minimum_bet,
            maximum_bet=ledger.maximum_bet,
        )

    def settle_closed_polls(self, db: Session, *, limit: int = 200) -> Dict[str, Any]:
        """
        Sweep: settle every closed poll without a settlement row.
        Polls with no votes or a rejected ledger are skipped and counted.
        """
        poll_ids = db.execute(
            select(Poll.id)
            .outerjoin(PollSettlement, PollSettlement.poll_id == Poll.id)
            .where(Poll.status == PollStatus.closed.value, PollSettlement.id.is_(None))
            .order_by(Poll.closed_at.asc(), Poll.id.asc())
            .limit(limit)
        ).scalars().all()

        settled = 0
        refunded = 0
        no_votes = 0
        rejected = 0

        for poll_id in poll_ids:
            try:
                row = self.settle_poll(db, poll_id=poll_id, settled_by="sweep")
            except NoVotesError:
                no_votes += 1
                continue
            except SettlementError:
                rejected += 1
                continue
            if row.mode == SettlementMode.REFUND.value:
                refunded += 1
            else:
                settled += 1

        summary = {
            "polls": len(poll_ids),
            "settled": settled,
            "refunded": refunded,
            "no_votes": no_votes,
            "rejected": rejected,
        }
        logger.info("[settlement] sweep %s", summary)
        return summary
