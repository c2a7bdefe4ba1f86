from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List

from app.core.errors import SettlementIntegrityError
from app.core.hashing import digest
from app.core.money import cents, from_cents
from app.schemas.settlement import (
    Distribution,
    PayoutDetail,
    PayoutInstruction,
    PlayerOutcome,
    PlayerSettlement,
    SettlementMode,
    SettlementResult,
    WinnerResolution,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# Balance checks
# ─────────────────────────────────────────────


def _check_balances(dist: Distribution, total_actual_payout: Decimal) -> List[str]:
    # Integer cents throughout
    errors: List[str] = []

    if cents(dist.payout_pool) + cents(dist.total_commission) != dist.total_bet_amount * 100:
        errors.append(
            f"pool {dist.payout_pool} + commission {dist.total_commission} "
            f"!= total bet {dist.total_bet_amount}"
        )

    if total_actual_payout > dist.payout_pool:
        errors.append(f"payouts {total_actual_payout} exceed pool {dist.payout_pool}")

    recorded = sum(d.bet_amount for d in dist.payout_details)
    if recorded != dist.total_bet_amount:
        errors.append(f"bet amount mismatch: expected {dist.total_bet_amount}, got {recorded}")

    for d in dist.payout_details:
        if d.payout < 0:
            errors.append(f"negative payout for {d.player_id}/{d.option_id}: {d.payout}")
        if cents(d.payout) - d.bet_amount * 100 != cents(d.profit):
            errors.append(f"profit mismatch for {d.player_id}/{d.option_id}")

    if dist.mode == SettlementMode.REFUND:
        if dist.total_commission != 0:
            errors.append(f"commission collected on refund: {dist.total_commission}")
        for d in dist.payout_details:
            if d.payout != d.bet_amount:
                errors.append(
                    f"refund amount incorrect for {d.player_id}: "
                    f"expected {d.bet_amount}, got {d.payout}"
                )
    else:
        for d in dist.payout_details:
            if not d.is_winning_option and d.payout != 0:
                errors.append(f"payout on losing option for {d.player_id}/{d.option_id}")

    return errors


def _average_profit_rate(winners: List[PayoutDetail]) -> Decimal:
    if not winners:
        return from_cents(0)
    return from_cents(sum(cents(d.profit_rate) for d in winners) // len(winners))


# ─────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────


def build_report(resolution: WinnerResolution, dist: Distribution) -> SettlementResult:
    """
    Assemble the final SettlementResult and refuse to emit one that does
    not balance.

    Under Settled mode a winner is a record with payout > 0.
    Under Refund mode every record counts as a winner.
    """
    details = list(dist.payout_details)
    payout_cents = sum(cents(d.payout) for d in details)
    total_actual_payout = from_cents(payout_cents)

    errors = _check_balances(dist, total_actual_payout)
    if errors:
        logger.error("[settlement] integrity check failed: %s", errors)
        raise SettlementIntegrityError("; ".join(errors))

    if dist.mode == SettlementMode.REFUND:
        winners = details
    else:
        winners = [d for d in details if d.payout > 0]

    result = SettlementResult(
        mode=dist.mode,
        commission_rate=dist.commission_rate,
        total_votes=resolution.total_votes,
        max_votes=resolution.max_votes,
        winning_option_ids=resolution.winning_option_ids,
        total_bet_amount=dist.total_bet_amount,
        total_commission=dist.total_commission,
        payout_pool=dist.payout_pool,
        total_winning_stake=dist.total_winning_stake,
        total_actual_payout=total_actual_payout,
        house_residual=from_cents(cents(dist.payout_pool) - payout_cents),
        winner_count=len(winners),
        loser_count=len(details) - len(winners),
        average_profit_rate=_average_profit_rate(winners),
        payout_details=dist.payout_details,
    )
    return result.model_copy(update={"digest": result_digest(result)})


def result_digest(result: SettlementResult) -> str:
    body = result.model_dump(mode="json", by_alias=True, exclude={"digest"})
    return digest(body)


def verify_digest(result: SettlementResult) -> bool:
    return bool(result.digest) and result.digest == result_digest(result)


def summarize_players(result: SettlementResult) -> List[PlayerSettlement]:
    """
    Per-player roll-up of the per-record details, first-seen order.
    """
    acc: Dict[str, Dict[str, object]] = {}
    for d in result.payout_details:
        row = acc.setdefault(
            d.player_id,
            {"total": 0, "winning": 0, "payout": 0, "count": 0},
        )
        row["total"] += d.bet_amount
        if d.is_winning_option:
            row["winning"] += d.bet_amount
        row["payout"] += cents(d.payout)
        row["count"] += 1

    out: List[PlayerSettlement] = []
    for player_id, row in acc.items():
        payout = from_cents(row["payout"])
        if result.mode == SettlementMode.REFUND:
            outcome = PlayerOutcome.REFUND
        elif payout > 0:
            outcome = PlayerOutcome.PAYOUT
        else:
            outcome = PlayerOutcome.LOSS
        out.append(
            PlayerSettlement(
                player_id=player_id,
                outcome=outcome,
                total_bet_amount=row["total"],
                winning_bet_amount=row["winning"],
                payout=payout,
                profit=from_cents(row["payout"] - row["total"] * 100),
                bet_count=row["count"],
            )
        )
    return out


def payout_instructions(result: SettlementResult) -> List[PayoutInstruction]:
    """Records with something to credit, in ledger order."""
    return [
        PayoutInstruction(player_id=d.player_id, option_id=d.option_id, amount=d.payout)
        for d in result.payout_details
        if d.payout > 0
    ]
