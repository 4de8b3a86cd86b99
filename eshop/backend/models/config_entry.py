"""
Config Entry Model.

Generic key/value table. Values are JSON documents stored as text.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from eshop.backend.core.utils import utc_now
from eshop.backend.models.base import Base


class ConfigEntry(Base):
    """One settings blob, e.g. 'chat-settings' or 'invoice-template'."""

    __tablename__ = "config_entries"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ConfigEntry(key={self.key!r})>"
