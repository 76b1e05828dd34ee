# src/ebb_stage/models/stream_entry.py
"""Federation wrapper rows around statuses."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ebb_stage.db.session import Base

if TYPE_CHECKING:
    from .status import Status


class StreamEntry(Base):
    """Protocol-facing entry that subscribers of a local account pull."""

    __tablename__ = "stream_entry"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("status.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
    )
    hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[Status] = relationship("Status", back_populates="stream_entry")
