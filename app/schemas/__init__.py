from app.schemas.settlement import BetRecord, OptionTally, OptionVoteShare, WinnerResolution
from app.schemas.settlement import PayoutDetail, Distribution, SettlementMode, SettlementResult
from app.schemas.settlement import PlayerOutcome, PlayerSettlement, PayoutInstruction
from app.schemas.settlement import OptionStats, PotentialWinner, PotentialRefund, SettlementRules, SettlementPreview
