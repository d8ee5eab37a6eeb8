from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint, Text, func
from castncatch.db import Base
from castncatch.records import new_id

class Location(Base):
    __tablename__ = "locations"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

class Challenge(Base):
    """Ranked timed challenge. `kind` is the namespace: hourly | proTournament."""
    __tablename__ = "challenges"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    kind: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    goal: Mapped[str] = mapped_column(String(16), nullable=False)  # Fish | Weight
    location: Mapped[str] = mapped_column(String(64), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True, nullable=False)
    max_reward: Mapped[int] = mapped_column(Integer, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, index=True, nullable=False, default=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=120)
    custom_text: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

class ChallengeScore(Base):
    __tablename__ = "challenge_scores"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    challenge_id: Mapped[str] = mapped_column(String(64), ForeignKey("challenges.id", ondelete="CASCADE"), index=True, nullable=False)
    player_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    player_name: Mapped[str | None] = mapped_column(String(64), nullable=True)  # denormalized at submission
    fish_caught: Mapped[int] = mapped_column(Integer, nullable=False)
    total_weight: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    coins: Mapped[int | None] = mapped_column(Integer, nullable=True)  # assigned at settlement

    __table_args__ = (
        UniqueConstraint("challenge_id", "player_id", name="uq_challenge_score_one_per_player"),
    )
