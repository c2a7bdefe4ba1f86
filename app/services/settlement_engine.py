from __future__ import annotations

import logging
from typing import Any, Collection, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from app.core.errors import InvalidLedgerError
from app.schemas.settlement import BetRecord, SettlementResult
from app.services.payout_service import check_commission_rate, distribute
from app.services.settlement_report_service import build_report
from app.services.tally_service import tally
from app.services.winner_service import resolve_winners

logger = logging.getLogger(__name__)

RecordLike = Union[BetRecord, dict]


def validate_ledger(
    records: Iterable[RecordLike],
    *,
    valid_option_ids: Optional[Collection[str]] = None,
) -> Tuple[BetRecord, ...]:
    """
    Reject a malformed ledger before any computation.
    Every problem is collected so the caller sees the whole list at once;
    nothing is clamped or skipped.
    """
    problems: List[str] = []
    parsed: List[BetRecord] = []
    allowed = frozenset(valid_option_ids) if valid_option_ids is not None else None

    for idx, raw in enumerate(records):
        if isinstance(raw, BetRecord):
            rec = raw
        else:
            try:
                rec = BetRecord.model_validate(raw)
            except ValidationError as exc:
                for err in exc.errors():
                    loc = ".".join(str(p) for p in err["loc"])
                    problems.append(f"record {idx}: {loc}: {err['msg']}")
                continue

        if rec.vote_weight < 0:
            problems.append(f"record {idx}: negative voteWeight {rec.vote_weight}")
        if rec.bet_amount < 0:
            problems.append(f"record {idx}: negative betAmount {rec.bet_amount}")
        if allowed is not None and rec.option_id not in allowed:
            problems.append(f"record {idx}: unknown optionId {rec.option_id!r}")
        parsed.append(rec)

    if problems:
        raise InvalidLedgerError(problems)
    return tuple(parsed)


def settle(
    records: Iterable[RecordLike],
    commission_rate: Any,
    *,
    valid_option_ids: Optional[Collection[str]] = None,
) -> SettlementResult:
    """
    Closed ledger -> SettlementResult.

    validate -> tally -> resolve winners -> distribute -> report.
    Pure: same ledger and rate always give a byte-identical result.

    Raises:
        InvalidLedgerError: malformed records or a rate outside [0, 1).
        NoVotesError: zero total votes; no result is produced.
    """
    rate = check_commission_rate(commission_rate)
    ledger = validate_ledger(records, valid_option_ids=valid_option_ids)

    tallies = tally(ledger)
    resolution = resolve_winners(tallies)
    dist = distribute(ledger, resolution.winning_option_ids, rate)
    result = build_report(resolution, dist)

    logger.debug(
        "[settlement] mode=%s records=%d winners=%d losers=%d digest=%s",
        result.mode.value,
        len(ledger),
        result.winner_count,
        result.loser_count,
        result.digest,
    )
    return result
