from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Float, DateTime, ForeignKey, JSON
from castncatch.db import Base

class UserStats(Base):
    __tablename__ = "user_stats"
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    total_casts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_catches: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_ounces: Mapped[float] = mapped_column(Float, index=True, nullable=False, default=0.0)
    biggest_catch: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)     # {"name": str, "ounces": float}
    catches_by_fish: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)   # name -> {"totalCaught", "totalOunces"}
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

class LeaderboardEntry(Base):
    __tablename__ = "leaderboard"
    position: Mapped[int] = mapped_column(Integer, primary_key=True)  # 1..10
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    player_name: Mapped[str] = mapped_column(String(64), nullable=False)
    total_ounces: Mapped[float] = mapped_column(Float, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
