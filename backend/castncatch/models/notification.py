from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, DateTime, UniqueConstraint, Text, func
from castncatch.db import Base
from castncatch.records import new_id

class Notification(Base):
    __tablename__ = "notifications"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    message: Mapped[str] = mapped_column(Text(), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)  # challengeResults | challengeRequests | friendChallengeResults | friendRequests
    data: Mapped[str] = mapped_column(String(255), nullable=False, default="")  # id of the related record, if any
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    dismissed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

class DeviceToken(Base):
    """FCM registration token; a user keeps at most 5."""
    __tablename__ = "device_tokens"
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    token: Mapped[str] = mapped_column(String(512), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "token", name="uq_device_token_per_user"),
    )
