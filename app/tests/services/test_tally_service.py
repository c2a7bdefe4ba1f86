from decimal import Decimal

from app.schemas.settlement import BetRecord
from app.services.tally_service import tally, vote_distribution


def bet(player, option, votes, amount):
    return BetRecord(player_id=player, option_id=option, vote_weight=votes, bet_amount=amount)


def test_tally_empty_ledger():
    assert tally([]) == {}


def test_tally_groups_by_option_in_first_seen_order():
    tallies = tally([
        bet("p1", "b", 2, 100),
        bet("p2", "a", 1, 50),
        bet("p1", "b", 3, 25),
    ])

    assert list(tallies) == ["b", "a"]
    assert tallies["b"].total_votes == 5
    assert tallies["b"].total_stake == 125
    assert tallies["b"].bet_count == 2
    assert tallies["a"].total_votes == 1
    assert tallies["a"].total_stake == 50


def test_tally_keeps_votes_and_stake_independent():
    tallies = tally([bet("v", "a", 10, 0), bet("m", "b", 0, 900)])

    assert tallies["a"].total_votes == 10
    assert tallies["a"].total_stake == 0
    assert tallies["b"].total_votes == 0
    assert tallies["b"].total_stake == 900


def test_vote_distribution_floors_rates():
    shares = vote_distribution(tally([bet("p1", "a", 1, 0), bet("p2", "b", 2, 0)]))

    assert [s.option_id for s in shares] == ["a", "b"]
    assert shares[0].vote_rate == Decimal("33.33")
    assert shares[1].vote_rate == Decimal("66.66")
