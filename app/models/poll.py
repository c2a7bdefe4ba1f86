#app/models/poll.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy import String, DateTime, Integer, CheckConstraint, JSON, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.enums import PollStatus


class Poll(Base):
    __tablename__ = "polls"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, server_default=text("''"))

    # Valid option ids; bets on anything else make the ledger invalid
    options: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default=text(f"'{PollStatus.open.value}'")
    )

    # Basis points (500 = 5%); NULL falls back to the configured default
    house_commission_bps: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    minimum_bet: Mapped[Optional[int]] = mapped_column(sa.BigInteger, nullable=True)
    maximum_bet: Mapped[Optional[int]] = mapped_column(sa.BigInteger, nullable=True)

    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    bets = relationship(
        "PollBet",
        back_populates="poll",
        cascade="all, delete-orphan",
        order_by="PollBet.seq",
    )

    settlement = relationship(
        "PollSettlement",
        back_populates="poll",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __table_args__ = (
        CheckConstraint(
            "house_commission_bps IS NULL OR (house_commission_bps >= 0 AND house_commission_bps < 10000)",
            name="ck_polls_commission_range",
        ),
    )
