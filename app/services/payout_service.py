"""
Pari-mutuel payout distribution.

    total_bet      = Σ betAmount
    commission     = floor(total_bet · rate, 0.01)
    payout_pool    = total_bet − commission
    winning_stake  = Σ betAmount where option ∈ winners

    winner record:  payout = floor(payout_pool · betAmount / winning_stake, 0.01)
    loser record:   payout = 0

If winning_stake is 0 nobody can be paid from the pool: every record is
refunded its stake and no commission is collected.

Shares are floored per record and never redistributed, so the residual
(payout_pool − Σ payout) stays with the house and Σ payout ≤ payout_pool.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Collection, Iterable, List, Tuple

from app.core.errors import InvalidLedgerError
from app.core.money import _d, cents, commission_cents, floor_share, from_cents, rate_percent
from app.schemas.settlement import BetRecord, Distribution, PayoutDetail, SettlementMode

logger = logging.getLogger(__name__)


def check_commission_rate(commission_rate: Any) -> Decimal:
    if isinstance(commission_rate, bool):
        raise InvalidLedgerError([f"commission rate must be numeric, got {commission_rate!r}"])
    try:
        rate = _d(commission_rate)
    except ValueError as exc:
        raise InvalidLedgerError([str(exc)]) from exc
    if not rate.is_finite() or rate < 0 or rate >= 1:
        raise InvalidLedgerError([f"commission rate must be in [0, 1), got {rate}"])
    return rate


def compute_commission(total_bet_amount: int, commission_rate: Decimal) -> Decimal:
    # Once on the whole pool, floored: never withhold more than configured.
    return from_cents(commission_cents(total_bet_amount, commission_rate))


def _refund(records: Tuple[BetRecord, ...], winners: Collection[str]) -> List[PayoutDetail]:
    return [
        PayoutDetail(
            player_id=rec.player_id,
            option_id=rec.option_id,
            bet_amount=rec.bet_amount,
            payout=from_cents(rec.bet_amount * 100),
            profit=from_cents(0),
            profit_rate=from_cents(0),
            is_winning_option=rec.option_id in winners,
        )
        for rec in records
    ]


def _settle(
    records: Tuple[BetRecord, ...],
    winners: Collection[str],
    payout_pool: Decimal,
    total_winning_stake: int,
) -> List[PayoutDetail]:
    details: List[PayoutDetail] = []
    for rec in records:
        if rec.option_id in winners:
            payout = floor_share(payout_pool, rec.bet_amount, total_winning_stake)
        else:
            payout = from_cents(0)
        profit = from_cents(cents(payout) - rec.bet_amount * 100)
        details.append(
            PayoutDetail(
                player_id=rec.player_id,
                option_id=rec.option_id,
                bet_amount=rec.bet_amount,
                payout=payout,
                profit=profit,
                profit_rate=rate_percent(profit, rec.bet_amount),
                is_winning_option=rec.option_id in winners,
            )
        )
    return details


def distribute(
    records: Iterable[BetRecord],
    winning_option_ids: Iterable[str],
    commission_rate: Any,
) -> Distribution:
    """
    One PayoutDetail per input record, in input order.
    Total over well-formed input; the rate is validated, records are assumed
    already validated by the ledger check.
    """
    rate = check_commission_rate(commission_rate)
    recs = tuple(records)
    winners = frozenset(winning_option_ids)

    total_bet_amount = sum(r.bet_amount for r in recs)
    total_winning_stake = sum(r.bet_amount for r in recs if r.option_id in winners)

    if total_winning_stake == 0:
        logger.debug(
            "[payout] refund: no stake on winning options total_bet=%s", total_bet_amount
        )
        return Distribution(
            mode=SettlementMode.REFUND,
            commission_rate=rate,
            total_bet_amount=total_bet_amount,
            total_commission=from_cents(0),
            payout_pool=from_cents(total_bet_amount * 100),
            total_winning_stake=0,
            payout_details=tuple(_refund(recs, winners)),
        )

    commission = commission_cents(total_bet_amount, rate)
    total_commission = from_cents(commission)
    payout_pool = from_cents(total_bet_amount * 100 - commission)

    logger.debug(
        "[payout] settled total_bet=%s commission=%s pool=%s winning_stake=%s",
        total_bet_amount,
        total_commission,
        payout_pool,
        total_winning_stake,
    )

    return Distribution(
        mode=SettlementMode.SETTLED,
        commission_rate=rate,
        total_bet_amount=total_bet_amount,
        total_commission=total_commission,
        payout_pool=payout_pool,
        total_winning_stake=total_winning_stake,
        payout_details=tuple(_settle(recs, winners, payout_pool, total_winning_stake)),
    )
