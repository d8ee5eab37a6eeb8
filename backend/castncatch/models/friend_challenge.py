from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint, Index, func, text
from castncatch.db import Base
from castncatch.records import new_id

class FriendChallenge(Base):
    __tablename__ = "friend_challenges"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    challenger_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    wager: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wager_escrowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    goal: Mapped[str] = mapped_column(String(16), nullable=False)
    location: Mapped[str] = mapped_column(String(64), nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=120)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed: Mapped[bool] = mapped_column(Boolean, index=True, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        # one open duel per ordered pair
        Index(
            "uq_friend_challenge_open_pair", "challenger_id", "recipient_id", unique=True,
            postgresql_where=text("NOT completed"), sqlite_where=text("NOT completed"),
        ),
    )

    scores: Mapped[list["FriendChallengeScore"]] = relationship(
        order_by="FriendChallengeScore.seq",
        lazy="selectin",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

class FriendChallengeScore(Base):
    __tablename__ = "friend_challenge_scores"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    challenge_id: Mapped[str] = mapped_column(String(64), ForeignKey("friend_challenges.id", ondelete="CASCADE"), index=True, nullable=False)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)  # submission order, 0 or 1
    player_id: Mapped[str] = mapped_column(String(64), nullable=False)
    player_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    fish_caught: Mapped[int] = mapped_column(Integer, nullable=False)
    total_weight: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("challenge_id", "player_id", name="uq_friend_score_one_per_player"),
        UniqueConstraint("challenge_id", "seq", name="uq_friend_score_seq"),
    )
