from pydantic import BaseModel
from typing import Optional
import datetime
from enum import Enum


class StatusEnum(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# -------------------
# Author Schemas
# -------------------

class AuthorBase(BaseModel):
    name: str
    email: str


class AuthorResponse(AuthorBase):
    id: int

    class Config:
        from_attributes = True


# -------------------
# Post Schemas
# -------------------

class PostBase(BaseModel):
    title: str
    body: str
    status: Optional[StatusEnum] = None
    author_id: int


class PostResponse(PostBase):
    id: int
    created_at: datetime.datetime
    author: Optional[AuthorResponse]

    class Config:
        from_attributes = True


class PostCount(BaseModel):
    status: StatusEnum
    count: int


class PostTimeCount(BaseModel):
    timestamp: int
    time_count: int
