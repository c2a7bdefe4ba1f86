from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Mapping

from app.core.money import rate_percent
from app.schemas.settlement import BetRecord, OptionTally, OptionVoteShare


def tally(records: Iterable[BetRecord]) -> Dict[str, OptionTally]:
    """
    Group records by option: Σ voteWeight -> total_votes, Σ betAmount -> total_stake.
    Options appear in order of first appearance in the ledger.
    """
    totals: Dict[str, List[int]] = {}
    for rec in records:
        acc = totals.setdefault(rec.option_id, [0, 0, 0])
        acc[0] += rec.vote_weight
        acc[1] += rec.bet_amount
        acc[2] += 1

    return {
        option_id: OptionTally(
            option_id=option_id,
            total_votes=votes,
            total_stake=stake,
            bet_count=count,
        )
        for option_id, (votes, stake, count) in totals.items()
    }


def vote_distribution(tallies: Mapping[str, OptionTally]) -> List[OptionVoteShare]:
    total_votes = sum(t.total_votes for t in tallies.values())
    return [
        OptionVoteShare(
            option_id=t.option_id,
            votes=t.total_votes,
            vote_rate=rate_percent(Decimal(t.total_votes), Decimal(total_votes)),
        )
        for t in tallies.values()
    ]
