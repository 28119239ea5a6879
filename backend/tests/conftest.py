"""Pytest configuration and fixtures."""
import os
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, AsyncGenerator, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

# Settings are read at import time; point them at throwaway values first.
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from newsroom.core.config import settings
from newsroom.core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from newsroom.db.base import Base
from newsroom.db.models import Article, Filter, Profile
from newsroom.db.session import get_session
from newsroom.main import app

# In-memory SQLite by default; set TEST_DATABASE_URL to run against PostgreSQL
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite://")

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator:
    """Create a fresh schema for each test."""
    is_sqlite = TEST_DATABASE_URL.startswith("sqlite")
    kwargs: Dict[str, Any] = {}
    if is_sqlite:
        kwargs = {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}

    test_engine = create_async_engine(TEST_DATABASE_URL, **kwargs)

    if is_sqlite:
        @event.listens_for(test_engine.sync_engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield test_engine
    finally:
        await drop_schema(test_engine)
        await test_engine.dispose()


async def drop_schema(test_engine) -> None:
    """Drop every table, even while parent/child filter rows remain."""
    async with test_engine.begin() as conn:
        if test_engine.dialect.name == "sqlite":
            # SQLite turns DROP TABLE into a row delete that RESTRICT foreign keys reject
            await conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def schema_dropper():
    return drop_schema


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by tests to seed and inspect data."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client whose requests each get their own session."""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_token(subject: str, secret: Optional[str] = None, expires_in: int = 3600) -> str:
    claims = {
        "sub": subject,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def _create_profile(db: AsyncSession, role: str) -> Profile:
    profile = Profile(email=f"{role}-{uuid.uuid4().hex[:8]}@example.com", full_name=role.title(), role=role)
    db.add(profile)
    await db.commit()
    return profile


@pytest_asyncio.fixture
async def admin_headers(db) -> Dict[str, str]:
    profile = await _create_profile(db, "admin")
    return {"Authorization": f"Bearer {make_token(str(profile.id))}"}


@pytest_asyncio.fixture
async def editor_headers(db) -> Dict[str, str]:
    profile = await _create_profile(db, "editor")
    return {"Authorization": f"Bearer {make_token(str(profile.id))}"}


@pytest_asyncio.fixture
async def taxonomy(db) -> Dict[str, Any]:
    """Seed a small taxonomy with linked articles.

    markets (0)
      defi (1)
        lending (2)
        dex (2)
      nft (1)
    research (0)

    Articles (published unless noted), newest first:
      lending-rates      {defi, lending}
      defi-weekly        {defi}
      defi-roundup       {defi, lending, dex}
      markets-outlook    {markets}
      undated-explainer  {defi}           (no published_at)
      lending-draft      {defi, lending}  (draft)
    """
    markets = Filter(name="Markets", slug="markets", level=0, order_index=1)
    research = Filter(name="Research", slug="research", level=0, order_index=2)
    db.add_all([markets, research])
    await db.flush()

    defi = Filter(name="DeFi", slug="defi", parent_id=markets.id, level=1, order_index=1)
    nft = Filter(name="NFT", slug="nft", parent_id=markets.id, level=1, order_index=2)
    db.add_all([defi, nft])
    await db.flush()

    lending = Filter(name="Lending", slug="lending", parent_id=defi.id, level=2, order_index=1)
    dex = Filter(name="DEX", slug="dex", parent_id=defi.id, level=2, order_index=2)
    db.add_all([lending, dex])
    await db.flush()

    def article(slug: str, filters: List[Filter], days: Optional[int], status: str = "published") -> Article:
        published_at = BASE_TIME + timedelta(days=days) if days is not None else None
        return Article(
            title=slug.replace("-", " ").title(),
            slug=slug,
            status=status,
            published_at=published_at,
            filters=filters,
        )

    articles = {
        "lending-rates": article("lending-rates", [defi, lending], 3),
        "defi-weekly": article("defi-weekly", [defi], 2),
        "defi-roundup": article("defi-roundup", [defi, lending, dex], 1),
        "markets-outlook": article("markets-outlook", [markets], 0),
        "undated-explainer": article("undated-explainer", [defi], None),
        "lending-draft": article("lending-draft", [defi, lending], 4, status="draft"),
    }
    db.add_all(articles.values())
    await db.commit()

    return {
        "filters": {
            "markets": markets,
            "research": research,
            "defi": defi,
            "nft": nft,
            "lending": lending,
            "dex": dex,
        },
        "articles": articles,
    }


class InMemoryTaxonomyStore:
    """Taxonomy store kept in dictionaries, for service tests."""

    def __init__(self) -> None:
        self.filters: Dict[UUID, SimpleNamespace] = {}
        self.articles: Dict[UUID, SimpleNamespace] = {}
        self.calls: List[str] = []
        self.fail_counts = False

    def add_filter(
        self,
        name: str,
        slug: str,
        parent: Optional[SimpleNamespace] = None,
        order_index: int = 0,
        level: Optional[int] = None,
        parent_id: Optional[UUID] = None,
    ) -> SimpleNamespace:
        row = SimpleNamespace(
            id=uuid.uuid4(),
            name=name,
            slug=slug,
            parent_id=parent.id if parent is not None else parent_id,
            level=level if level is not None else (parent.level + 1 if parent is not None else 0),
            order_index=order_index,
            description=None,
            created_at=BASE_TIME,
        )
        self.filters[row.id] = row
        return row

    def add_article(
        self,
        slug: str,
        filters: Iterable[SimpleNamespace],
        status: str = "published",
        published_at: Optional[datetime] = None,
    ) -> SimpleNamespace:
        row = SimpleNamespace(
            id=uuid.uuid4(),
            title=slug,
            slug=slug,
            status=status,
            published_at=published_at,
            filter_ids={f.id for f in filters},
        )
        self.articles[row.id] = row
        return row

    async def list_all_filters(self) -> List[SimpleNamespace]:
        self.calls.append("list_all_filters")
        return list(self.filters.values())

    async def get_filter(self, filter_id: UUID) -> Optional[SimpleNamespace]:
        self.calls.append("get_filter")
        return self.filters.get(filter_id)

    async def find_filter_by_slug(self, slug: str) -> Optional[SimpleNamespace]:
        self.calls.append("find_filter_by_slug")
        return next((row for row in self.filters.values() if row.slug == slug), None)

    async def get_filters_by_ids(self, filter_ids: Iterable[UUID]) -> List[SimpleNamespace]:
        self.calls.append("get_filters_by_ids")
        return [self.filters[i] for i in filter_ids if i in self.filters]

    async def find_filters_by_slugs(self, slugs: Iterable[str]) -> List[SimpleNamespace]:
        self.calls.append("find_filters_by_slugs")
        wanted = set(slugs)
        return [row for row in self.filters.values() if row.slug in wanted]

    async def count_articles_for_filter(self, filter_id: UUID) -> int:
        return sum(
            1 for a in self.articles.values() if a.status == "published" and filter_id in a.filter_ids
        )

    async def count_articles_by_filter(self) -> Dict[UUID, int]:
        self.calls.append("count_articles_by_filter")
        if self.fail_counts:
            raise PersistenceError("Failed to count articles by filter", "count_articles_by_filter")
        counts: Dict[UUID, int] = {}
        for a in self.articles.values():
            if a.status != "published":
                continue
            for filter_id in a.filter_ids:
                counts[filter_id] = counts.get(filter_id, 0) + 1
        return counts

    async def create_filter(self, values: Mapping[str, Any]) -> SimpleNamespace:
        if any(row.slug == values["slug"] for row in self.filters.values()):
            raise ConflictError(f"Filter slug '{values['slug']}' already exists")
        row = SimpleNamespace(id=uuid.uuid4(), created_at=BASE_TIME, **values)
        self.filters[row.id] = row
        return row

    async def update_filter(
        self,
        filter_id: UUID,
        values: Mapping[str, Any],
        relevel: Optional[Mapping[UUID, int]] = None,
    ) -> Optional[SimpleNamespace]:
        row = self.filters.get(filter_id)
        if row is None:
            return None
        for key, value in values.items():
            setattr(row, key, value)
        for descendant_id, level in (relevel or {}).items():
            self.filters[descendant_id].level = level
        return row

    async def delete_filter(self, filter_id: UUID) -> None:
        if filter_id not in self.filters:
            raise NotFoundError("Filter not found")
        if any(filter_id in a.filter_ids for a in self.articles.values()):
            raise ConflictError("Cannot delete filter referenced by articles")
        if any(row.parent_id == filter_id for row in self.filters.values()):
            raise ConflictError("Cannot delete filter with child filters")
        del self.filters[filter_id]

    async def query_articles_by_filter_ids(
        self, filter_ids: Sequence[UUID], page: int, page_size: int
    ) -> Tuple[List[SimpleNamespace], int]:
        self.calls.append("query_articles_by_filter_ids")
        wanted = set(filter_ids)
        if not wanted:
            raise ValidationError("At least one filter is required")
        matches = [
            a for a in self.articles.values()
            if a.status == "published" and wanted <= a.filter_ids
        ]
        matches.sort(key=lambda a: (a.published_at is None, -(a.published_at.timestamp() if a.published_at else 0)))
        start = (page - 1) * page_size
        return matches[start:start + page_size], len(matches)


@pytest.fixture
def store() -> InMemoryTaxonomyStore:
    return InMemoryTaxonomyStore()


@pytest.fixture
def bearer():
    """Build Authorization headers for an arbitrary subject (signing secret and expiry overridable)."""

    def build(subject: str, **kwargs: Any) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(subject, **kwargs)}"}

    return build
