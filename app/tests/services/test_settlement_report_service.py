from decimal import Decimal

import pytest

from app.core.errors import SettlementIntegrityError
from app.schemas.settlement import (
    BetRecord,
    Distribution,
    PayoutDetail,
    PlayerOutcome,
    SettlementMode,
    WinnerResolution,
)
from app.services.payout_service import distribute
from app.services.settlement_report_service import (
    build_report,
    payout_instructions,
    summarize_players,
    verify_digest,
)
from app.services.tally_service import tally
from app.services.winner_service import resolve_winners


def bet(player, option, votes, amount):
    return BetRecord(player_id=player, option_id=option, vote_weight=votes, bet_amount=amount)


def report_for(records, rate="0.05"):
    resolution = resolve_winners(tally(records))
    return build_report(resolution, distribute(records, resolution.winning_option_ids, Decimal(rate)))


MIXED = [
    bet("p1", "a", 1, 100),
    bet("p1", "b", 0, 100),
    bet("p2", "a", 1, 300),
    bet("p3", "b", 1, 500),
]


def test_report_counts_and_totals():
    result = report_for(MIXED)

    assert result.mode == SettlementMode.SETTLED
    assert result.winning_option_ids == ("a",)
    assert result.total_commission == Decimal("50.00")
    assert result.payout_pool == Decimal("950.00")
    assert result.total_winning_stake == 400
    assert result.total_actual_payout == Decimal("950.00")
    assert result.house_residual == Decimal("0.00")
    assert result.winner_count == 2
    assert result.loser_count == 2
    assert len(result.digest) == 64


def test_average_profit_rate_over_winners():
    result = report_for(MIXED)

    # p1/a: 237.50 on 100 -> 137.50%; p2/a: 712.50 on 300 -> 137.50%
    assert result.average_profit_rate == Decimal("137.50")


def test_refund_counts_everyone_as_winner():
    result = report_for([bet("v", "a", 5, 0), bet("p1", "b", 1, 40), bet("p2", "b", 1, 60)])

    assert result.mode == SettlementMode.REFUND
    assert result.winner_count == 3
    assert result.loser_count == 0
    assert result.total_commission == Decimal("0.00")
    assert result.total_actual_payout == Decimal("100.00")


def test_digest_detects_tampering():
    result = report_for(MIXED)
    assert verify_digest(result)

    tampered = result.model_copy(update={"total_commission": Decimal("0.00")})
    assert not verify_digest(tampered)


def test_report_refuses_payouts_above_pool():
    dist = Distribution(
        mode=SettlementMode.SETTLED,
        commission_rate=Decimal("0.05"),
        total_bet_amount=100,
        total_commission=Decimal("5.00"),
        payout_pool=Decimal("95.00"),
        total_winning_stake=100,
        payout_details=(
            PayoutDetail(
                player_id="p1",
                option_id="a",
                bet_amount=100,
                payout=Decimal("96.00"),
                profit=Decimal("-4.00"),
                profit_rate=Decimal("-4.00"),
                is_winning_option=True,
            ),
        ),
    )
    resolution = WinnerResolution(winning_option_ids=("a",), max_votes=1, total_votes=1)

    with pytest.raises(SettlementIntegrityError):
        build_report(resolution, dist)


def test_report_refuses_commission_on_refund():
    dist = Distribution(
        mode=SettlementMode.REFUND,
        commission_rate=Decimal("0.05"),
        total_bet_amount=100,
        total_commission=Decimal("5.00"),
        payout_pool=Decimal("95.00"),
        total_winning_stake=0,
        payout_details=(
            PayoutDetail(
                player_id="p1",
                option_id="b",
                bet_amount=100,
                payout=Decimal("95.00"),
                profit=Decimal("-5.00"),
                profit_rate=Decimal("-5.00"),
                is_winning_option=False,
            ),
        ),
    )
    resolution = WinnerResolution(winning_option_ids=("a",), max_votes=1, total_votes=1)

    with pytest.raises(SettlementIntegrityError):
        build_report(resolution, dist)


def test_summarize_players_rolls_up_records():
    players = {p.player_id: p for p in summarize_players(report_for(MIXED))}

    assert list(players) == ["p1", "p2", "p3"]

    assert players["p1"].outcome == PlayerOutcome.PAYOUT
    assert players["p1"].total_bet_amount == 200
    assert players["p1"].winning_bet_amount == 100
    assert players["p1"].payout == Decimal("237.50")
    assert players["p1"].profit == Decimal("37.50")
    assert players["p1"].bet_count == 2

    assert players["p2"].payout == Decimal("712.50")
    assert players["p3"].outcome == PlayerOutcome.LOSS
    assert players["p3"].profit == Decimal("-500.00")


def test_summarize_players_refund():
    result = report_for([bet("v", "a", 5, 0), bet("p1", "b", 1, 40)])

    assert {p.outcome for p in summarize_players(result)} == {PlayerOutcome.REFUND}


def test_payout_instructions_skip_zero_payouts():
    instructions = payout_instructions(report_for(MIXED))

    assert [(i.player_id, i.option_id, i.amount) for i in instructions] == [
        ("p1", "a", Decimal("237.50")),
        ("p2", "a", Decimal("712.50")),
    ]
