#app/models/poll_bet.py
from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import String, DateTime, Integer, ForeignKey, UniqueConstraint, CheckConstraint, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class PollBet(Base):
    """
    One ledger row. Immutable once the poll closes; `seq` fixes the
    ledger order that settlement details preserve.
    """
    __tablename__ = "poll_bets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    poll_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("polls.id", ondelete="CASCADE"),
        nullable=False,
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    player_id: Mapped[str] = mapped_column(String(128), nullable=False)
    option_id: Mapped[str] = mapped_column(String(128), nullable=False)

    vote_weight: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)
    bet_amount: Mapped[int] = mapped_column(sa.BigInteger, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    poll = relationship("Poll", back_populates="bets")

    __table_args__ = (
        UniqueConstraint("poll_id", "seq", name="uq_poll_bets_poll_seq"),
        CheckConstraint("vote_weight >= 0", name="ck_poll_bets_vote_weight_nonnegative"),
        CheckConstraint("bet_amount >= 0", name="ck_poll_bets_bet_amount_nonnegative"),
        Index("ix_poll_bets_poll", "poll_id"),
    )
