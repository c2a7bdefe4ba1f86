from decimal import Decimal

import pytest
from sqlalchemy import select, func

from app.core.config import Settings
from app.core.errors import (
    InvalidLedgerError,
    NoVotesError,
    PollNotClosedError,
    PollNotFoundError,
    SettlementError,
)
from app.models.enums import PollStatus
from app.models.poll import Poll
from app.models.poll_bet import PollBet
from app.models.poll_settlement import PollSettlement
from app.services.poll_settlement_service import PollSettlementService


def create_poll(db, poll_id="poll-1", options=("a", "b"), status=PollStatus.closed, bps=500, bets=()):
    p = Poll(
        id=poll_id,
        title=f"Poll {poll_id}",
        options=list(options),
        status=status.value,
        house_commission_bps=bps,
    )
    db.add(p)
    for seq, (player, option, votes, amount) in enumerate(bets):
        db.add(
            PollBet(
                poll_id=poll_id,
                seq=seq,
                player_id=player,
                option_id=option,
                vote_weight=votes,
                bet_amount=amount,
            )
        )
    db.commit()
    return p


BETS = [
    ("p1", "a", 1, 100),
    ("p2", "a", 1, 200),
    ("p3", "b", 1, 300),
    ("p4", "a", 0, 400),
]


def svc():
    return PollSettlementService(Settings(default_house_commission_rate=Decimal("0.10")))


def test_settle_poll_stores_result(db):
    create_poll(db, bets=BETS)

    row = svc().settle_poll(db, poll_id="poll-1", settled_by="admin")

    assert row.mode == "Settled"
    assert row.winning_option_ids == ["a"]
    assert row.total_bet_amount == 1000
    assert row.total_commission_cents == 5000
    assert row.payout_pool_cents == 95000
    assert row.total_payout_cents == 94998
    assert row.winner_count == 3
    assert row.loser_count == 1
    assert row.settled_by == "admin"
    assert len(row.digest) == 64


def test_settle_poll_is_idempotent(db):
    create_poll(db, bets=BETS)
    service = svc()

    first = service.settle_poll(db, poll_id="poll-1")
    second = service.settle_poll(db, poll_id="poll-1")

    assert first.id == second.id
    count = db.execute(select(func.count()).select_from(PollSettlement)).scalar_one()
    assert count == 1


def test_stored_result_replays_and_verifies(db):
    create_poll(db, bets=BETS)
    service = svc()
    row = service.settle_poll(db, poll_id="poll-1")

    result = service.load_result(row)

    assert result.digest == row.digest
    assert [d.player_id for d in result.payout_details] == ["p1", "p2", "p3", "p4"]
    assert result.payout_details[3].payout == Decimal("542.85")
    assert result.house_residual == Decimal("0.02")


def test_tampered_row_fails_digest(db):
    create_poll(db, bets=BETS)
    service = svc()
    row = service.settle_poll(db, poll_id="poll-1")

    body = dict(row.result_json)
    body["totalCommission"] = "0.00"
    row.result_json = body
    db.commit()

    with pytest.raises(SettlementError):
        service.load_result(row)


def test_payouts_for_settled_poll(db):
    create_poll(db, bets=BETS)
    service = svc()
    service.settle_poll(db, poll_id="poll-1")

    instructions = service.payouts_for(db, poll_id="poll-1")

    assert [(i.player_id, i.amount) for i in instructions] == [
        ("p1", Decimal("135.71")),
        ("p2", Decimal("271.42")),
        ("p4", Decimal("542.85")),
    ]


def test_payouts_for_unsettled_poll(db):
    create_poll(db, bets=BETS)

    with pytest.raises(SettlementError):
        svc().payouts_for(db, poll_id="poll-1")


def test_unknown_poll(db):
    with pytest.raises(PollNotFoundError):
        svc().settle_poll(db, poll_id="missing")


def test_open_poll_cannot_settle(db):
    create_poll(db, status=PollStatus.open, bets=BETS)

    with pytest.raises(PollNotClosedError):
        svc().settle_poll(db, poll_id="poll-1")


def test_no_votes_leaves_poll_unsettled(db):
    create_poll(db, bets=[("p1", "a", 0, 100)])

    with pytest.raises(NoVotesError):
        svc().settle_poll(db, poll_id="poll-1")

    assert db.execute(select(PollSettlement)).scalar_one_or_none() is None


def test_bet_on_unknown_option_is_rejected(db):
    create_poll(db, bets=[("p1", "a", 1, 100), ("p2", "zzz", 2, 100)])

    with pytest.raises(InvalidLedgerError):
        svc().settle_poll(db, poll_id="poll-1")


def test_default_rate_used_when_poll_has_none(db):
    create_poll(db, bps=None, bets=BETS)

    row = svc().settle_poll(db, poll_id="poll-1")

    assert row.total_commission_cents == 10000


def test_preview_poll(db):
    create_poll(db, bets=BETS)

    preview = svc().preview_poll(db, poll_id="poll-1")

    assert preview.winning_option_ids == ("a",)
    assert preview.total_commission == Decimal("50.00")


def test_settle_closed_polls_sweep(db):
    create_poll(db, poll_id="settled", bets=BETS)
    create_poll(db, poll_id="refund", bets=[("v", "a", 5, 0), ("p1", "b", 1, 100)])
    create_poll(db, poll_id="empty", bets=[])
    create_poll(db, poll_id="bad", bets=[("p1", "nope", 1, 100)])
    create_poll(db, poll_id="still-open", status=PollStatus.open, bets=BETS)

    summary = svc().settle_closed_polls(db)

    assert summary == {"polls": 4, "settled": 1, "refunded": 1, "no_votes": 1, "rejected": 1}

    again = svc().settle_closed_polls(db)
    assert again["polls"] == 2
    assert again["settled"] == 0
