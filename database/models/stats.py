from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    BigInteger,
    Float,
    Integer,
    ForeignKey,
    DateTime,
    JSON,
    func,
)
from database.engine import Base
from database.models.users import User
from datetime import datetime
from typing import Any


class UserStats(Base):
    """Per-user practice statistics, keyed 1:1 by user and created lazily."""

    __tablename__ = "user_stats"

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    problems_solved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # minutes
    time_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    study_plan: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    user: Mapped[User] = relationship("User", lazy="raise")
