from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from fastapi import FastAPI, Depends, Request
import sqlalchemy
from fastapi_granular_search import EntitySearchConfig, GranularQuery, Searchable, group_by, group_by_time, time_search
from fastapi_pagination import Page, add_pagination
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy import String, Text, ForeignKey, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column, relationship, declarative_base
import uvicorn

from examples.schemas import StatusEnum, PostCount, PostResponse, PostTimeCount

# ───── App & DB Setup ───────────────────────────

DATABASE_URL = "sqlite+aiosqlite:///./test.db"

engine = create_async_engine(DATABASE_URL, echo=True)
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)
Base = declarative_base()


async def get_db():
    async with SessionLocal() as session:
        yield session


# ───── Models ────────────────────────────────────

class Author(Searchable, Base):
    __tablename__ = "authors"
    __granular_search__ = EntitySearchConfig(
        excluded_fields=["password_hash"],
        fuzzy_fields=["name", "email"],
        allowed_relations=["posts"],
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String, default="")

    posts: Mapped[list["Post"]] = relationship("Post", back_populates="author")


class Post(Searchable, Base):
    __tablename__ = "posts"
    __granular_search__ = EntitySearchConfig(
        fuzzy_fields=["title", "body"],
        allowed_relations=["author"],
        free_text_relations=["author"],
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String, index=True)
    body: Mapped[str] = mapped_column(Text)
    status: Mapped[StatusEnum] = mapped_column(
        sqlalchemy.Enum(StatusEnum),
        default=StatusEnum.DRAFT,
        nullable=False
    )
    author_id: Mapped[int] = mapped_column(ForeignKey("authors.id"))
    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(timezone.utc))

    author: Mapped["Author"] = relationship("Author", back_populates="posts", lazy="selectin")


# ───── Lifespan / Seed Data ─────────────────────

@asynccontextmanager
async def lifespan(_: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as session:
        result = await session.execute(select(Author))
        if not result.scalars().first():
            now = datetime.now(timezone.utc)
            ada = Author(name="Ada Lovelace", email="ada@example.com")
            alan = Author(name="Alan Turing", email="alan@example.com")
            grace = Author(name="Grace Hopper", email="grace@example.com")
            session.add_all([ada, alan, grace])
            await session.commit()

            session.add_all([
                Post(title="Notes on the Analytical Engine", body="Bernoulli numbers", author=ada,
                     status=StatusEnum.PUBLISHED, created_at=now - timedelta(days=3)),
                Post(title="Computing Machinery and Intelligence", body="The imitation game", author=alan,
                     status=StatusEnum.PUBLISHED, created_at=now - timedelta(days=2)),
                Post(title="On Computable Numbers", body="Entscheidungsproblem", author=alan,
                     status=StatusEnum.ARCHIVED, created_at=now - timedelta(days=2)),
                Post(title="The first bug", body="A moth in the relay", author=grace,
                     status=StatusEnum.DRAFT, created_at=now - timedelta(days=1)),
            ])
            await session.commit()

    yield

# ───── FastAPI App ───────────────────────────────

app = FastAPI(lifespan=lifespan)


@app.get("/posts")
async def get_posts(query=GranularQuery(Post), session: AsyncSession = Depends(get_db)):
    """
    GET /posts?q=turing                     free text over title, body and the author
    GET /posts?status=published&sortByDesc=created_at
    GET /posts?author_name=Ada              posts whose author's name matches "Ada"
    GET /posts?id[]=1&id[]=3                id IN (1, 3)
    """
    result = await session.execute(query)
    return result.scalars().all()


@app.get("/posts/paginated", response_model=Page[PostResponse])
async def get_posts_paginated(query=GranularQuery(Post), session: AsyncSession = Depends(get_db)):
    return await paginate(session, query)


@app.get("/posts/by-date", response_model=list[PostResponse])
async def get_posts_by_date(request: Request, session: AsyncSession = Depends(get_db)):
    """GET /posts/by-date?date_from=2024-01-01&date_to=2024-01-31"""
    query = time_search(Post.granular_search(request), Post, request)
    result = await session.execute(query)
    return result.scalars().all()


@app.get("/posts/count-by-status", response_model=list[PostCount])
async def count_posts_by_status(request: Request, session: AsyncSession = Depends(get_db)):
    result = await session.execute(group_by(Post.granular_search(request), Post, "status"))
    return [PostCount(**row._mapping) for row in result]


@app.get("/posts/count-by-time/{time_type}", response_model=list[PostTimeCount])
async def count_posts_by_time(time_type: str, request: Request, session: AsyncSession = Depends(get_db)):
    """GET /posts/count-by-time/day?value=2"""
    query = group_by_time(Post.granular_search(request), Post, time_type, request)
    result = await session.execute(query)
    return [PostTimeCount(**row._mapping) for row in result]


@app.get("/authors", response_model=list[dict])
async def get_authors(request: Request, session: AsyncSession = Depends(get_db)):
    """GET /authors?post_title=engine"""
    result = await session.execute(Author.granular_search(request))
    return [{"id": a.id, "name": a.name, "email": a.email} for a in result.scalars().all()]


add_pagination(app)

# ───── Run Server ────────────────────────────────

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
