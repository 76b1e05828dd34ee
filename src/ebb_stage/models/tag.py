# src/ebb_stage/models/tag.py
"""Hashtags attached to statuses."""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from ebb_stage.db.session import Base


class Tag(Base):
    """Hashtag, stored lowercase without the leading ``#``."""

    __tablename__ = "tag"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
