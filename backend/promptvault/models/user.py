"""User model - accounts that own prompts, folders and teams."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from promptvault.models.base import Base, IdMixin, TimestampMixin


class User(Base, IdMixin, TimestampMixin):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    image: Mapped[str | None] = mapped_column(String(1000), nullable=True)
