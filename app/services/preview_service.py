from __future__ import annotations

from typing import Any, Collection, Iterable, List, Optional

from app.core.errors import InvalidLedgerError
from app.core.money import cents, floor_share, from_cents
from app.schemas.settlement import (
    OptionStats,
    PotentialRefund,
    PotentialWinner,
    SettlementMode,
    SettlementPreview,
    SettlementRules,
)
from app.services.payout_service import check_commission_rate, compute_commission
from app.services.settlement_engine import RecordLike, validate_ledger
from app.services.tally_service import tally
from app.services.winner_service import resolve_winners


def preview_settlement(
    records: Iterable[RecordLike],
    commission_rate: Any,
    *,
    winning_option_ids: Optional[Collection[str]] = None,
    valid_option_ids: Optional[Collection[str]] = None,
    minimum_bet: Optional[int] = None,
    maximum_bet: Optional[int] = None,
) -> SettlementPreview:
    """
    Option-level view of what a settlement would pay, for an operator to
    review before closing. Candidate winners may be supplied; otherwise the
    vote resolver picks them (and raises NoVotesError on an empty ledger).

    A supplied candidate outside valid_option_ids is rejected. A valid
    candidate nobody bet on adds no winning stake, so a preview whose
    candidates all lack stake comes out as Refund.

    Estimates are per option, not per record, so they may differ from the
    final per-record sum by the flooring residual.
    """
    rate = check_commission_rate(commission_rate)
    ledger = validate_ledger(records, valid_option_ids=valid_option_ids)
    tallies = tally(ledger)

    if winning_option_ids is None:
        winners = resolve_winners(tallies).winning_option_ids
    else:
        winners = tuple(winning_option_ids)
        if valid_option_ids is not None:
            allowed = set(valid_option_ids)
            unknown = [w for w in winners if w not in allowed]
            if unknown:
                raise InvalidLedgerError(
                    [f"unknown winning optionId {w!r}" for w in unknown]
                )

    total_bet_amount = sum(t.total_stake for t in tallies.values())
    total_winning_stake = sum(
        tallies[w].total_stake for w in winners if w in tallies
    )

    option_results = [
        OptionStats(
            option_id=t.option_id,
            total_votes=t.total_votes,
            total_bet_amount=t.total_stake,
            participant_count=t.bet_count,
            average_bet_amount=t.total_stake // t.bet_count if t.bet_count else 0,
        )
        for t in tallies.values()
    ]

    potential_winners: List[PotentialWinner] = []
    if total_winning_stake == 0:
        mode = SettlementMode.REFUND
        commission = from_cents(0)
        pool = from_cents(total_bet_amount * 100)
    else:
        mode = SettlementMode.SETTLED
        commission = compute_commission(total_bet_amount, rate)
        pool = from_cents(total_bet_amount * 100 - cents(commission))
        for w in winners:
            t = tallies.get(w)
            if t is None:
                continue
            potential_winners.append(
                PotentialWinner(
                    option_id=w,
                    total_bet_amount=t.total_stake,
                    participant_count=t.bet_count,
                    estimated_payout=floor_share(pool, t.total_stake, total_winning_stake),
                )
            )

    return SettlementPreview(
        mode=mode,
        winning_option_ids=winners,
        total_bet_amount=total_bet_amount,
        total_commission=commission,
        payout_pool=pool,
        option_results=option_results,
        potential_winners=potential_winners,
        potential_refund=PotentialRefund(
            total_amount=total_bet_amount,
            participant_count=len(ledger),
        ),
        settlement_rules=SettlementRules(
            house_commission_rate=rate,
            minimum_bet=minimum_bet,
            maximum_bet=maximum_bet,
        ),
    )
