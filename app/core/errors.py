from __future__ import annotations

from typing import List, Optional


class SettlementError(ValueError):
    """Base class for every settlement failure."""


class NoVotesError(SettlementError):
    """
    The ledger carries zero total votes.
    Settlement is undefined; the poll must stay unsettled.
    """

    def __init__(self, message: str = "No votes recorded; poll is not settleable.") -> None:
        super().__init__(message)


class InvalidLedgerError(SettlementError):
    def __init__(self, problems: List[str]) -> None:
        self.problems = list(problems)
        super().__init__("Invalid ledger: " + "; ".join(self.problems))


class SettlementIntegrityError(SettlementError):
    """A computed settlement failed its own balance checks."""


class PollNotFoundError(SettlementError):
    def __init__(self, poll_id: Optional[str] = None) -> None:
        self.poll_id = poll_id
        super().__init__(f"Poll not found: {poll_id}")


class PollNotClosedError(SettlementError):
    def __init__(self, poll_id: Optional[str] = None) -> None:
        self.poll_id = poll_id
        super().__init__(f"Settlement can be computed only after poll close: {poll_id}")
