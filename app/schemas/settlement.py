from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic.alias_generators import to_camel


class _Frozen(BaseModel):
    """
    Settlement values are immutable once computed.
    Fields serialize camelCase (playerId, betAmount, ...) for the persistence
    and payout collaborators.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SettlementMode(str, Enum):
    SETTLED = "Settled"
    REFUND = "Refund"


class PlayerOutcome(str, Enum):
    PAYOUT = "PAYOUT"
    REFUND = "REFUND"
    LOSS = "LOSS"


# ─────────────────────────────────────────────
# Input
# ─────────────────────────────────────────────


class BetRecord(_Frozen):
    """
    One bettor's stake on one option of a closed poll.
    A player may appear on many records. Range checks (non-negative,
    known option) live in the ledger validation step, so a malformed ledger
    is reported as a whole instead of failing on the first bad row.
    """

    player_id: str = Field(..., min_length=1)
    option_id: str = Field(..., min_length=1)
    vote_weight: StrictInt
    bet_amount: StrictInt


# ─────────────────────────────────────────────
# Intermediate
# ─────────────────────────────────────────────


class OptionTally(_Frozen):
    option_id: str
    total_votes: int = 0
    total_stake: int = 0
    bet_count: int = 0


class OptionVoteShare(_Frozen):
    option_id: str
    votes: int
    vote_rate: Decimal = Field(..., description="Percent of all votes, floored to 2 places")


class WinnerResolution(_Frozen):
    winning_option_ids: Tuple[str, ...]
    max_votes: int
    total_votes: int
    vote_distribution: Tuple[OptionVoteShare, ...] = ()


class PayoutDetail(_Frozen):
    player_id: str
    option_id: str
    bet_amount: int
    payout: Decimal
    profit: Decimal
    profit_rate: Decimal
    is_winning_option: bool


class Distribution(_Frozen):
    mode: SettlementMode
    commission_rate: Decimal
    total_bet_amount: int
    total_commission: Decimal
    payout_pool: Decimal
    total_winning_stake: int
    payout_details: Tuple[PayoutDetail, ...]


# ─────────────────────────────────────────────
# Output
# ─────────────────────────────────────────────


class SettlementResult(_Frozen):
    """
    Immutable, balance-checked settlement of one closed poll.
    `digest` is the sha256 of the canonical JSON of every other field, so an
    auditor can replay the ledger and compare a single string.
    """

    mode: SettlementMode
    commission_rate: Decimal
    total_votes: int
    max_votes: int
    winning_option_ids: Tuple[str, ...]

    total_bet_amount: int
    total_commission: Decimal
    payout_pool: Decimal
    total_winning_stake: int
    total_actual_payout: Decimal
    house_residual: Decimal

    winner_count: int
    loser_count: int
    average_profit_rate: Decimal

    payout_details: Tuple[PayoutDetail, ...]
    digest: str = ""


class PlayerSettlement(_Frozen):
    player_id: str
    outcome: PlayerOutcome
    total_bet_amount: int
    winning_bet_amount: int
    payout: Decimal
    profit: Decimal
    bet_count: int


class PayoutInstruction(_Frozen):
    """Handed to the payout executor; amounts are already final."""

    player_id: str
    option_id: str
    amount: Decimal


# ─────────────────────────────────────────────
# Preview
# ─────────────────────────────────────────────


class OptionStats(_Frozen):
    option_id: str
    total_votes: int
    total_bet_amount: int
    participant_count: int
    average_bet_amount: int


class PotentialWinner(_Frozen):
    option_id: str
    total_bet_amount: int
    participant_count: int
    estimated_payout: Decimal


class PotentialRefund(_Frozen):
    total_amount: int
    participant_count: int


class SettlementRules(_Frozen):
    house_commission_rate: Decimal
    minimum_bet: Optional[int] = None
    maximum_bet: Optional[int] = None


class SettlementPreview(_Frozen):
    mode: SettlementMode
    winning_option_ids: Tuple[str, ...]
    total_bet_amount: int
    total_commission: Decimal
    payout_pool: Decimal
    option_results: List[OptionStats] = Field(default_factory=list)
    potential_winners: List[PotentialWinner] = Field(default_factory=list)
    potential_refund: PotentialRefund
    settlement_rules: SettlementRules
