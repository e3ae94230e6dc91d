from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    BigInteger,
    ForeignKey,
    DateTime,
    Text,
    JSON,
    UniqueConstraint,
    func,
    Enum as SQLEnum,
)
from database.engine import Base, BigIntPK
from database.models.users import User
from datetime import datetime
from enum import Enum as PyEnum


class Difficulty(str, PyEnum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Problem(Base):
    """Coding problem. Owned by its creator; admins approve it for listing."""

    __tablename__ = "problems"

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty: Mapped[Difficulty] = mapped_column(
        SQLEnum(
            Difficulty,
            native_enum=False,
            length=10,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        index=True,
    )
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    input: Mapped[str | None] = mapped_column(Text)
    output: Mapped[str | None] = mapped_column(Text)
    constraints: Mapped[str | None] = mapped_column(Text)
    leetcode_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    creator_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    creator: Mapped[User | None] = relationship("User", lazy="raise")


class ProblemTag(Base):
    """Tag assignment; unique per (problem, tag)."""

    __tablename__ = "problem_tags"
    __table_args__ = (
        UniqueConstraint("problem_id", "tag", name="uq_problem_tags_problem_tag"),
    )

    id: Mapped[int] = mapped_column(
        BigIntPK, primary_key=True, nullable=False, autoincrement=True
    )
    problem_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("problems.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tag: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    problem: Mapped[Problem] = relationship("Problem", lazy="raise")
