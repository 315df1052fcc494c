"""Mapped models shared by the test suite."""

import enum
from datetime import datetime
from typing import Optional

import sqlalchemy
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from fastapi_granular_search import EntitySearchConfig, Searchable


class Base(DeclarativeBase):
    pass


class StatusEnum(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Author(Searchable, Base):
    __tablename__ = "authors"
    __granular_search__ = EntitySearchConfig(
        excluded_fields=["password"],
        fuzzy_fields=["name", "email"],
        allowed_relations=["posts"],
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(100))
    password: Mapped[str] = mapped_column(String(100), default="")
    age: Mapped[Optional[int]] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    posts: Mapped[list["Post"]] = relationship(
        "Post", back_populates="author", foreign_keys="Post.author_id")


class Post(Searchable, Base):
    __tablename__ = "posts"
    __granular_search__ = EntitySearchConfig(
        fuzzy_fields=["title", "body"],
        allowed_relations=["author", "reviewer", "comments"],
        free_text_relations=["author", "reviewer"],
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    body: Mapped[str] = mapped_column(Text, default="")
    status: Mapped[StatusEnum] = mapped_column(
        sqlalchemy.Enum(StatusEnum), default=StatusEnum.DRAFT)
    views: Mapped[int] = mapped_column(default=0)
    author_id: Mapped[int] = mapped_column(ForeignKey("authors.id"))
    reviewer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("authors.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column()

    author: Mapped["Author"] = relationship(
        "Author", back_populates="posts", foreign_keys=[author_id])
    reviewer: Mapped[Optional["Author"]] = relationship("Author", foreign_keys=[reviewer_id])
    comments: Mapped[list["Comment"]] = relationship("Comment", back_populates="post")


class Comment(Searchable, Base):
    __tablename__ = "comments"
    __granular_search__ = EntitySearchConfig(
        fuzzy_fields=["body"],
        allowed_relations=["post"],
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    body: Mapped[str] = mapped_column(Text)
    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id"))

    post: Mapped["Post"] = relationship("Post", back_populates="comments")
