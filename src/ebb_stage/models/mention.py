# src/ebb_stage/models/mention.py
"""Mentions of accounts inside statuses."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ebb_stage.db.session import Base

if TYPE_CHECKING:
    from .account import Account
    from .status import Status


class Mention(Base):
    """Link between a status and an account it addresses."""

    __tablename__ = "mention"
    __table_args__ = (UniqueConstraint("status_id", "account_id", name="uq_mention_status_account"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("status.id", ondelete="CASCADE"),
        nullable=False,
    )
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
    )

    status: Mapped[Status] = relationship("Status", back_populates="mentions")
    account: Mapped[Account] = relationship("Account")
