from __future__ import annotations

import logging
from typing import Mapping

from app.core.errors import NoVotesError
from app.schemas.settlement import OptionTally, WinnerResolution
from app.services.tally_service import vote_distribution

logger = logging.getLogger(__name__)


def resolve_winners(tallies: Mapping[str, OptionTally]) -> WinnerResolution:
    """
    Every option holding the maximum vote total wins.
    An N-way exact tie yields N winners; there is no tiebreak.

    Raises NoVotesError when there are no options or no votes at all.
    """
    total_votes = sum(t.total_votes for t in tallies.values())
    if not tallies or total_votes == 0:
        raise NoVotesError()

    max_votes = max(t.total_votes for t in tallies.values())
    winning = tuple(
        option_id for option_id, t in tallies.items() if t.total_votes == max_votes
    )

    logger.debug(
        "[winners] total_votes=%s max_votes=%s winners=%s",
        total_votes,
        max_votes,
        ",".join(winning),
    )

    return WinnerResolution(
        winning_option_ids=winning,
        max_votes=max_votes,
        total_votes=total_votes,
        vote_distribution=tuple(vote_distribution(tallies)),
    )
