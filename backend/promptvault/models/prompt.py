"""Prompt models - prompts, sharing joins and immutable version snapshots."""
import enum
from datetime import datetime

from sqlalchemy import String, Text, Integer, JSON, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from promptvault.models.base import Base, IdMixin, TimestampMixin, utcnow


class ContentType(str, enum.Enum):
    PROMPT = "PROMPT"
    TEMPLATE = "TEMPLATE"
    CONVERSATION = "CONVERSATION"
    CONVERSATION_SUMMARY = "CONVERSATION_SUMMARY"
    META_NOTE = "META_NOTE"
    PROMPT_WITH_EXAMPLES = "PROMPT_WITH_EXAMPLES"


class Visibility(str, enum.Enum):
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"
    TEAM = "TEAM"


# Fields copied into a PromptVersion snapshot and written back on restore.
VERSIONED_FIELDS = (
    "title",
    "content",
    "content_url",
    "usage_notes",
    "variables",
    "example_io",
    "tags",
    "custom_sections",
    "metadata_",
)


class Prompt(Base, IdMixin, TimestampMixin):
    __tablename__ = "prompts"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    content_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    usage_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_type: Mapped[str] = mapped_column(String(30), default=ContentType.PROMPT.value)
    variables: Mapped[list | None] = mapped_column(JSON, nullable=True)
    example_io: Mapped[list | None] = mapped_column(JSON, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    custom_sections: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    owner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    folder_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("folders.id", ondelete="SET NULL"), nullable=True, index=True
    )
    visibility: Mapped[str] = mapped_column(String(20), default=Visibility.PRIVATE.value)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_prompts_updated_at", "updated_at"),
        Index("idx_prompts_visibility", "visibility", "deleted_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class PromptCoCreator(Base):
    __tablename__ = "prompt_co_creators"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prompt_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("prompt_id", "user_id", name="uq_prompt_co_creator"),
    )


class PromptTeamAccess(Base):
    __tablename__ = "prompt_team_access"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prompt_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    team_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint("prompt_id", "team_id", name="uq_prompt_team_access"),
    )


class PromptVersion(Base, IdMixin):
    """Immutable snapshot of a prompt's editable fields."""
    __tablename__ = "prompt_versions"

    prompt_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    content_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    usage_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    variables: Mapped[list | None] = mapped_column(JSON, nullable=True)
    example_io: Mapped[list | None] = mapped_column(JSON, nullable=True)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    custom_sections: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        UniqueConstraint("prompt_id", "version", name="uq_prompt_version"),
    )
