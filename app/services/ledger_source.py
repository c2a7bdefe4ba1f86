# app/services/ledger_source.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import PollNotFoundError
from app.models.enums import PollStatus
from app.models.poll import Poll
from app.models.poll_bet import PollBet
from app.schemas.settlement import BetRecord

BPS = Decimal("10000")


class PollLedger(BaseModel):
    """Closed poll as handed to the settlement engine."""

    model_config = ConfigDict(frozen=True)

    poll_id: str
    is_closed: bool
    option_ids: Tuple[str, ...]
    commission_rate: Optional[Decimal] = None
    minimum_bet: Optional[int] = None
    maximum_bet: Optional[int] = None
    records: Tuple[BetRecord, ...] = ()


class LedgerSource(Protocol):
    def load_ledger(self, poll_id: str) -> PollLedger:
        ...


def bps_to_rate(bps: Optional[int]) -> Optional[Decimal]:
    if bps is None:
        return None
    return Decimal(bps) / BPS


class SqlLedgerSource:
    """
    Reads a poll and its bet rows. Records come back in ledger order
    (seq, then id) so settlement details keep that order.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def load_ledger(self, poll_id: str) -> PollLedger:
        poll = self.db.get(Poll, poll_id)
        if not poll:
            raise PollNotFoundError(poll_id)

        rows = self.db.execute(
            select(PollBet)
            .where(PollBet.poll_id == poll_id)
            .order_by(PollBet.seq.asc(), PollBet.id.asc())
        ).scalars().all()

        return PollLedger(
            poll_id=poll.id,
            is_closed=poll.status == PollStatus.closed.value,
            option_ids=tuple(poll.options or ()),
            commission_rate=bps_to_rate(poll.house_commission_bps),
            minimum_bet=poll.minimum_bet,
            maximum_bet=poll.maximum_bet,
            records=tuple(
                BetRecord(
                    player_id=r.player_id,
                    option_id=r.option_id,
                    vote_weight=int(r.vote_weight),
                    bet_amount=int(r.bet_amount),
                )
                for r in rows
            ),
        )
