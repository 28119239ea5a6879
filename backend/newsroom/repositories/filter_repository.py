"""Filter repository: the database-backed taxonomy store."""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.core.exceptions import ConflictError, NotFoundError, ValidationError
from newsroom.db.models.article import Article, ArticleStatus
from newsroom.db.models.article_filter import article_filters
from newsroom.db.models.filter import Filter
from newsroom.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)

REFERENCED_BY_ARTICLES = "Cannot delete filter referenced by articles"
HAS_CHILD_FILTERS = "Cannot delete filter with child filters"
MISSING_RELATED_FILTER = "Filter references a filter that no longer exists"
FILTER_CONSTRAINT_CONFLICT = "Filter conflicts with existing data"


def _integrity_conflict(error: IntegrityError, values: Mapping[str, Any]) -> ConflictError:
    """Pick the conflict message for a rejected filter insert or update."""
    detail = str(error.orig).lower()
    if "foreign key" in detail:
        return ConflictError(MISSING_RELATED_FILTER)
    if values.get("slug") and ("unique" in detail or "duplicate" in detail):
        return ConflictError(f"Filter slug '{values['slug']}' already exists")
    return ConflictError(FILTER_CONSTRAINT_CONFLICT)


class FilterRepository(BaseRepository[Filter]):
    """Repository for Filter rows and their article links."""

    def __init__(self, session: AsyncSession):
        """Initialize filter repository.

        Args:
            session: Async database session
        """
        super().__init__(Filter, session)

    async def list_all_filters(self) -> List[Filter]:
        """Get every filter regardless of level. Ordering is not guaranteed."""
        try:
            return await self.list_all()
        except SQLAlchemyError as e:
            raise self._persistence_error("list_all_filters", e)

    async def get_filter(self, filter_id: UUID) -> Optional[Filter]:
        try:
            return await self.get_by_id(filter_id)
        except SQLAlchemyError as e:
            raise self._persistence_error("get_filter", e, filter_id=filter_id)

    async def find_filter_by_slug(self, slug: str) -> Optional[Filter]:
        """Get filter by its slug.

        Args:
            slug: URL-safe filter slug

        Returns:
            Filter instance or None if not found
        """
        try:
            result = await self.session.execute(select(Filter).filter(Filter.slug == slug))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._persistence_error("find_filter_by_slug", e, slug=slug)

    async def get_filters_by_ids(self, filter_ids: Iterable[UUID]) -> List[Filter]:
        ids = list(filter_ids)
        if not ids:
            return []
        try:
            result = await self.session.execute(select(Filter).filter(Filter.id.in_(ids)))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._persistence_error("get_filters_by_ids", e, filter_ids=ids)

    async def find_filters_by_slugs(self, slugs: Iterable[str]) -> List[Filter]:
        slug_list = list(slugs)
        if not slug_list:
            return []
        try:
            result = await self.session.execute(select(Filter).filter(Filter.slug.in_(slug_list)))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._persistence_error("find_filters_by_slugs", e, slugs=slug_list)

    async def count_articles_for_filter(self, filter_id: UUID) -> int:
        """Count published articles linked directly to one filter.

        Articles linked only to descendants of the filter are not counted.

        Args:
            filter_id: Filter ID

        Returns:
            Number of published articles
        """
        query = (
            select(func.count())
            .select_from(article_filters.join(Article, Article.id == article_filters.c.article_id))
            .filter(
                article_filters.c.filter_id == filter_id,
                Article.status == ArticleStatus.PUBLISHED.value,
            )
        )
        try:
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise self._persistence_error("count_articles_for_filter", e, filter_id=filter_id)

    async def count_articles_by_filter(self) -> Dict[UUID, int]:
        """Direct published-article counts for every filter that has any.

        Same per-node semantics as count_articles_for_filter, in one grouped query.
        Filters without published articles are absent from the mapping.
        """
        query = (
            select(article_filters.c.filter_id, func.count().label("article_count"))
            .select_from(article_filters.join(Article, Article.id == article_filters.c.article_id))
            .filter(Article.status == ArticleStatus.PUBLISHED.value)
            .group_by(article_filters.c.filter_id)
        )
        try:
            result = await self.session.execute(query)
            return {row.filter_id: row.article_count for row in result.all()}
        except SQLAlchemyError as e:
            raise self._persistence_error("count_articles_by_filter", e)

    async def create_filter(self, values: Mapping[str, Any]) -> Filter:
        """Insert a filter row.

        Args:
            values: Column values (name, slug, parent_id, level, order_index, description)

        Returns:
            Created Filter with ID populated

        Raises:
            ConflictError: If the slug is already taken or the parent is gone
        """
        try:
            return await self.create(Filter(**values))
        except IntegrityError as e:
            logger.warning(f"Filter insert rejected by constraint (slug={values.get('slug')}): {e.orig}")
            raise _integrity_conflict(e, values)
        except SQLAlchemyError as e:
            raise self._persistence_error("create_filter", e, slug=values.get("slug"))

    async def update_filter(
        self,
        filter_id: UUID,
        values: Mapping[str, Any],
        relevel: Optional[Mapping[UUID, int]] = None,
    ) -> Optional[Filter]:
        """Update a filter and re-level its descendants in the same transaction.

        Args:
            filter_id: Filter ID
            values: Column values to write on the filter itself
            relevel: New level per descendant ID, when the filter moved

        Returns:
            Updated Filter instance or None if not found
        """
        try:
            filter_obj = await self.get_by_id(filter_id)
            if filter_obj is None:
                return None

            for key, value in values.items():
                setattr(filter_obj, key, value)

            for descendant_id, level in (relevel or {}).items():
                await self.session.execute(
                    update(Filter).filter(Filter.id == descendant_id).values(level=level)
                )

            await self.session.flush()
            await self.session.refresh(filter_obj)
            return filter_obj
        except IntegrityError as e:
            logger.warning(f"Filter update rejected by constraint (filter_id={filter_id}): {e.orig}")
            raise _integrity_conflict(e, values)
        except SQLAlchemyError as e:
            raise self._persistence_error("update_filter", e, filter_id=filter_id)

    async def delete_filter(self, filter_id: UUID) -> None:
        """Delete a filter only if no article and no child filter references it.

        The reference check and the delete are one conditional statement, so
        an article linked concurrently cannot slip in between.

        Args:
            filter_id: Filter ID

        Raises:
            NotFoundError: If the filter does not exist
            ConflictError: If articles or child filters still reference it
        """
        filters_table = Filter.__table__
        children = filters_table.alias("child_filters")
        stmt = delete(filters_table).where(
            filters_table.c.id == filter_id,
            ~select(article_filters.c.article_id)
            .where(article_filters.c.filter_id == filter_id)
            .exists(),
            ~select(children.c.id).where(children.c.parent_id == filter_id).exists(),
        )

        try:
            result = await self.session.execute(stmt)
            if result.rowcount > 0:
                await self.session.flush()
                return

            if await self.get_by_id(filter_id) is None:
                raise NotFoundError("Filter not found")

            referenced = await self.session.execute(
                select(func.count())
                .select_from(article_filters)
                .filter(article_filters.c.filter_id == filter_id)
            )
            if referenced.scalar_one() > 0:
                raise ConflictError(REFERENCED_BY_ARTICLES)
            raise ConflictError(HAS_CHILD_FILTERS)
        except IntegrityError as e:
            logger.warning(f"Filter delete rejected by constraint (filter_id={filter_id}): {e.orig}")
            raise ConflictError(REFERENCED_BY_ARTICLES)
        except SQLAlchemyError as e:
            raise self._persistence_error("delete_filter", e, filter_id=filter_id)

    async def query_articles_by_filter_ids(
        self, filter_ids: Sequence[UUID], page: int, page_size: int
    ) -> Tuple[List[Article], int]:
        """Get published articles linked to every one of the given filters.

        Args:
            filter_ids: Filter IDs the articles must all carry (AND, not OR)
            page: 1-based page number
            page_size: Articles per page

        Returns:
            (articles for the page ordered by published_at desc with nulls last, total count)

        Raises:
            ValidationError: If no filter IDs are given
        """
        ids = list(dict.fromkeys(filter_ids))
        if not ids:
            raise ValidationError("At least one filter is required")

        matching_ids = (
            select(article_filters.c.article_id)
            .filter(article_filters.c.filter_id.in_(ids))
            .group_by(article_filters.c.article_id)
            .having(func.count(article_filters.c.filter_id) == len(ids))
        )
        base_query = select(Article).filter(
            Article.id.in_(matching_ids),
            Article.status == ArticleStatus.PUBLISHED.value,
        )

        try:
            total_result = await self.session.execute(
                select(func.count()).select_from(base_query.subquery())
            )
            total = total_result.scalar_one()

            result = await self.session.execute(
                base_query.order_by(Article.published_at.desc().nulls_last(), Article.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            return list(result.scalars().all()), total
        except SQLAlchemyError as e:
            raise self._persistence_error("query_articles_by_filter_ids", e, filter_ids=ids, page=page)
