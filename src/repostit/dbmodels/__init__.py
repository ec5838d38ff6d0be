"""
Database models for Repostit (authoritative ORM definitions).

This module defines the SQLAlchemy Base with a naming convention for stable
Alembic autogenerate diffs, and exposes `target_metadata` for Alembic.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Text,
    UniqueConstraint,
    text as sql_text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Naming convention for deterministic constraint/index names in Alembic diffs
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all database models with type checking support."""

    metadata = MetaData(naming_convention=naming_convention)


class Users(Base):
    __tablename__ = "users"
    __table_args__ = (
        PrimaryKeyConstraint("id", name="users_pkey"),
        UniqueConstraint("username", name="users_username_key"),
        UniqueConstraint("email", name="users_email_key"),
    )

    id: Mapped[int] = mapped_column(Integer, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=sql_text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=sql_text("CURRENT_TIMESTAMP"),
    )

    posts: Mapped[list["Posts"]] = relationship(
        "Posts", uselist=True, back_populates="creator"
    )
    upvotes: Mapped[list["Upvotes"]] = relationship(
        "Upvotes", uselist=True, back_populates="user"
    )


class Posts(Base):
    __tablename__ = "posts"
    __table_args__ = (
        ForeignKeyConstraint(
            ["creator_id"],
            ["users.id"],
            ondelete="CASCADE",
            name="posts_creator_id_fkey",
        ),
        PrimaryKeyConstraint("id", name="posts_pkey"),
        Index("idx_posts_created_at", "created_at"),
        Index("idx_posts_creator", "creator_id"),
    )

    id: Mapped[int] = mapped_column(Integer, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    points: Mapped[int] = mapped_column(
        Integer, default=0, server_default=sql_text("0")
    )
    creator_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        server_default=sql_text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(True),
        default=utcnow,
        onupdate=utcnow,
        server_default=sql_text("CURRENT_TIMESTAMP"),
    )

    creator: Mapped["Users"] = relationship("Users", back_populates="posts")
    upvotes: Mapped[list["Upvotes"]] = relationship(
        "Upvotes",
        uselist=True,
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Upvotes(Base):
    """One user's +1/-1 vote on one post."""

    __tablename__ = "upvotes"
    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            ondelete="CASCADE",
            name="upvotes_user_id_fkey",
        ),
        ForeignKeyConstraint(
            ["post_id"],
            ["posts.id"],
            ondelete="CASCADE",
            name="upvotes_post_id_fkey",
        ),
        PrimaryKeyConstraint("user_id", "post_id", name="upvotes_pkey"),
        Index("idx_upvotes_post", "post_id"),
    )

    user_id: Mapped[int] = mapped_column(Integer, autoincrement=False)
    post_id: Mapped[int] = mapped_column(Integer, autoincrement=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    user: Mapped["Users"] = relationship("Users", back_populates="upvotes")
    post: Mapped["Posts"] = relationship("Posts", back_populates="upvotes")


target_metadata = Base.metadata

__all__ = ["Base", "Posts", "Upvotes", "Users", "target_metadata", "utcnow"]
