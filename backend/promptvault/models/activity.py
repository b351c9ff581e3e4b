"""ActivityLog model - append-only audit/feed entries."""
import enum
from datetime import datetime

from sqlalchemy import String, JSON, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from promptvault.models.base import Base, IdMixin, utcnow


class ActivityType(str, enum.Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    VIEWED = "VIEWED"
    SHARED = "SHARED"
    COPIED = "COPIED"
    MOVED = "MOVED"
    DELETED = "DELETED"


class ActivityLog(Base, IdMixin):
    __tablename__ = "activity_logs"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    prompt_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("prompts.id", ondelete="CASCADE"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_activity_user", "user_id", "created_at"),
        Index("idx_activity_prompt", "prompt_id", "created_at"),
    )
