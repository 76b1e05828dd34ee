# src/ebb_stage/models/status.py
"""SQLAlchemy models for statuses and their reblogs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, Index, Integer, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ebb_stage.db.session import Base

if TYPE_CHECKING:
    from .account import Account
    from .mention import Mention
    from .stream_entry import StreamEntry
    from .tag import Tag


status_tag = Table(
    "status_tag",
    Base.metadata,
    Column("status_id", Integer, ForeignKey("status.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tag.id", ondelete="CASCADE"), primary_key=True),
)


class Status(Base):
    """A post, or a reblog of another post when ``reblog_of_id`` is set.

    Reblog rows reference their original with ``ON DELETE CASCADE`` so that
    removing an original removes every reblog of it at the storage layer.
    """

    __tablename__ = "status"
    __table_args__ = (
        Index("ix_status_account_id", "account_id"),
        Index("ix_status_reblog_of_id", "reblog_of_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
    )
    reblog_of_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("status.id", ondelete="CASCADE"),
        nullable=True,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Canonical URI; remote statuses keep the one assigned by their origin.
    uri: Mapped[str | None] = mapped_column(Text, nullable=True)

    account: Mapped[Account] = relationship("Account", back_populates="statuses")
    reblog_of: Mapped[Status | None] = relationship(
        "Status",
        remote_side="Status.id",
        back_populates="reblogs",
    )
    reblogs: Mapped[list[Status]] = relationship(
        "Status",
        back_populates="reblog_of",
        passive_deletes=True,
    )
    stream_entry: Mapped[StreamEntry | None] = relationship(
        "StreamEntry",
        back_populates="status",
        uselist=False,
        passive_deletes=True,
    )
    mentions: Mapped[list[Mention]] = relationship(
        "Mention",
        back_populates="status",
        passive_deletes=True,
        order_by="Mention.id",
    )
    tags: Mapped[list[Tag]] = relationship(
        "Tag",
        secondary=status_tag,
        passive_deletes=True,
        order_by="Tag.id",
    )

    @property
    def local(self) -> bool:
        """Return True when the status was authored on this instance."""
        return self.account.local
