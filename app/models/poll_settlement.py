#app/models/poll_settlement.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy import String, DateTime, Integer, ForeignKey, UniqueConstraint, JSON, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class PollSettlement(Base):
    """
    Stored settlement of one poll. The unique poll_id is the exactly-once
    marker: a second settle attempt finds this row instead of recomputing.

    Amounts are integer cents; money never round-trips through a float column.
    """
    __tablename__ = "poll_settlements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    poll_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("polls.id", ondelete="CASCADE"),
        nullable=False,
    )

    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    winning_option_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    total_bet_amount: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)
    total_commission_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)
    payout_pool_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)
    total_payout_cents: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)

    winner_count: Mapped[int] = mapped_column(Integer, nullable=False)
    loser_count: Mapped[int] = mapped_column(Integer, nullable=False)

    # Full SettlementResult (camelCase JSON) + its sha256
    result_json: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    digest: Mapped[str] = mapped_column(String(64), nullable=False)

    settled_by: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    settled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    poll = relationship("Poll", back_populates="settlement")

    __table_args__ = (
        UniqueConstraint("poll_id", name="uq_poll_settlements_poll"),
    )
