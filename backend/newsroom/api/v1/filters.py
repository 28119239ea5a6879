"""Filter taxonomy endpoints.

Routes
------
GET    /filters                        Hierarchical filters (?includeCounts, ?stats)
POST   /filters                        Create a filter (admin)
PUT    /filters                        Update a filter; body carries the id (admin)
DELETE /filters?id=<id>                Delete an unreferenced filter (admin)
GET    /filters/{id_or_slug}/articles  Published articles carrying ALL selected filters
"""
import logging
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.core.auth import require_filter_admin
from newsroom.core.config import settings
from newsroom.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    TaxonomyError,
    ValidationError,
)
from newsroom.db.session import get_session
from newsroom.repositories.filter_repository import FilterRepository
from newsroom.services.filter_resolver import FilterResolver
from newsroom.services.filtered_articles import FilteredArticleQueryEngine
from newsroom.services.taxonomy_service import TaxonomyService

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")


# Request/Response Models
class DataResponse(BaseModel, Generic[T]):
    """Envelope for successful payloads."""

    data: T


class FilterCreate(BaseModel):
    """Request model for creating a filter. Missing name/slug is reported as 400."""

    name: Optional[str] = None
    slug: Optional[str] = None
    parent_id: Optional[UUID] = None
    order_index: int = 0
    description: Optional[str] = None


class FilterUpdate(BaseModel):
    """Request model for partial filter updates."""

    id: Optional[str] = None
    name: Optional[str] = None
    slug: Optional[str] = None
    parent_id: Optional[UUID] = None
    order_index: Optional[int] = None
    description: Optional[str] = None


class FilterResponse(BaseModel):
    """Flat filter row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    parent_id: Optional[UUID] = None
    level: int
    order_index: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class FilterNodeResponse(FilterResponse):
    """Filter with nested children and, when requested, its article count."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    children: List["FilterNodeResponse"] = []
    article_count: Optional[int] = Field(default=None, alias="articleCount")


FilterNodeResponse.model_rebuild()


class FilterStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    total: int
    level0_count: int = Field(alias="level0Count")
    level1_count: int = Field(alias="level1Count")
    level2_count: int = Field(alias="level2Count")
    with_articles_count: int = Field(alias="withArticlesCount")
    by_level: Dict[int, int] = Field(default_factory=dict, alias="byLevel")


class ArticleFilterRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    level: int


class ArticleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    excerpt: Optional[str] = None
    status: str
    published_at: Optional[datetime] = None
    filters: List[ArticleFilterRef] = []


class FilteredArticlesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    articles: List[ArticleResponse]
    total_count: int = Field(alias="totalCount")
    page: int
    page_size: int = Field(alias="pageSize")
    total_pages: int = Field(alias="totalPages")


class MessageResponse(BaseModel):
    message: str


def _to_http_error(error: TaxonomyError, failure_detail: str) -> HTTPException:
    """Map a domain error to its HTTP status. Store failures get a generic message."""
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=failure_detail)


# Endpoints
@router.get("/filters", response_model=None)
async def list_filters(
    include_counts: bool = Query(default=False, alias="includeCounts"),
    stats: bool = Query(default=False),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """
    Get the filter taxonomy.

    Returns the ordered forest of root filters with nested children. With
    `stats=true` returns aggregate counts instead; `withArticlesCount` is only
    populated when `includeCounts=true` as well.
    """
    try:
        resolver = FilterResolver(FilterRepository(session))

        if stats:
            filter_stats = await resolver.get_stats(include_counts=include_counts)
            payload = FilterStatsResponse.model_validate(filter_stats)
            return {"data": payload.model_dump(mode="json", by_alias=True)}

        forest = await resolver.get_hierarchy(include_counts=include_counts)
        nodes = [FilterNodeResponse.model_validate(node) for node in forest]
        return {"data": [node.model_dump(mode="json", by_alias=True) for node in nodes]}

    except PersistenceError as e:
        raise _to_http_error(e, "Failed to fetch filters")


@router.post(
    "/filters",
    response_model=DataResponse[FilterResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_filter(
    request: FilterCreate,
    session: AsyncSession = Depends(get_session),
    profile_id: UUID = Depends(require_filter_admin),
) -> DataResponse[FilterResponse]:
    """Create a filter. The level is derived from `parent_id`."""
    try:
        service = TaxonomyService(FilterRepository(session))
        created = await service.create_filter(request.model_dump())
        await session.commit()

        logger.info(f"Profile {profile_id} created filter {created.slug}")
        return DataResponse(data=FilterResponse.model_validate(created))

    except TaxonomyError as e:
        await session.rollback()
        raise _to_http_error(e, "Failed to create filter")


@router.put("/filters", response_model=DataResponse[FilterResponse])
async def update_filter(
    request: FilterUpdate,
    session: AsyncSession = Depends(get_session),
    profile_id: UUID = Depends(require_filter_admin),
) -> DataResponse[FilterResponse]:
    """Update a filter. Only the fields present in the body are written."""
    if not request.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filter ID is required")

    try:
        service = TaxonomyService(FilterRepository(session))
        updates = request.model_dump(exclude_unset=True, exclude={"id"})
        updated = await service.update_filter(request.id, updates)
        await session.commit()

        logger.info(f"Profile {profile_id} updated filter {request.id}")
        return DataResponse(data=FilterResponse.model_validate(updated))

    except TaxonomyError as e:
        await session.rollback()
        raise _to_http_error(e, "Failed to update filter")


@router.delete("/filters", response_model=MessageResponse)
async def delete_filter(
    id: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_session),
    profile_id: UUID = Depends(require_filter_admin),
) -> MessageResponse:
    """
    Delete a filter.

    Fails with 409 while any article (or child filter) still references it;
    associations are never removed implicitly.
    """
    if not id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filter ID is required")

    try:
        service = TaxonomyService(FilterRepository(session))
        await service.delete_filter(id)
        await session.commit()

        logger.info(f"Profile {profile_id} deleted filter {id}")
        return MessageResponse(message="Filter deleted successfully")

    except TaxonomyError as e:
        await session.rollback()
        raise _to_http_error(e, "Failed to delete filter")


@router.get(
    "/filters/{filter_ref}/articles",
    response_model=DataResponse[FilteredArticlesResponse],
)
async def get_filter_articles(
    filter_ref: str,
    page: int = Query(default=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE),
    filters: List[str] = Query(default=[]),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[FilteredArticlesResponse]:
    """
    Get published articles carrying the path filter AND every `filters` entry.

    Both the path and the repeatable `filters` parameter accept ids or slugs.
    Additional filters that do not resolve are ignored; an unknown path
    filter is a 404.
    """
    try:
        engine = FilteredArticleQueryEngine(FilterRepository(session))
        result = await engine.query(filter_ref, filters, page=page, page_size=limit)

        return DataResponse(data=FilteredArticlesResponse(
            articles=[ArticleResponse.model_validate(article) for article in result.articles],
            total_count=result.total_count,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
        ))

    except TaxonomyError as e:
        raise _to_http_error(e, "Failed to fetch articles by filter")
