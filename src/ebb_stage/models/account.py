# src/ebb_stage/models/account.py
"""SQLAlchemy models for accounts and the follow graph."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ebb_stage.db.session import Base

if TYPE_CHECKING:
    from .status import Status


class Account(Base):
    """Local or remote actor.

    Remote accounts carry the domain of the instance that owns them; local
    accounts leave it NULL.
    """

    __tablename__ = "account"
    __table_args__ = (UniqueConstraint("username", "domain", name="uq_account_username_domain"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[str | None] = mapped_column(Text, nullable=True)

    statuses: Mapped[list[Status]] = relationship(
        "Status",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def local(self) -> bool:
        """Return True when the account lives on this instance."""
        return self.domain is None


class Follow(Base):
    """Edge stating that ``account_id`` follows ``target_account_id``."""

    __tablename__ = "follow"
    __table_args__ = (Index("ix_follow_target_account_id", "target_account_id"),)

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    target_account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        primary_key=True,
    )
