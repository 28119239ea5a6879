"""Filtered article query engine (AND across every selected filter)."""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional
from uuid import UUID

from newsroom.core.config import settings
from newsroom.repositories.taxonomy_store import TaxonomyStore
from newsroom.services.filter_resolver import FilterResolver

logger = logging.getLogger(__name__)


@dataclass
class FilteredArticlesPage:
    """One page of articles matching all resolved filters."""

    articles: List[Any]
    total_count: int
    page: int
    page_size: int
    filter_ids: List[UUID] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0


class FilteredArticleQueryEngine:
    """Resolves a primary plus additional filter identifiers and pages the matches."""

    def __init__(
        self,
        store: TaxonomyStore,
        resolver: Optional[FilterResolver] = None,
        max_page_size: Optional[int] = None,
    ):
        self.store = store
        self.resolver = resolver or FilterResolver(store)
        self.max_page_size = max_page_size or settings.MAX_PAGE_SIZE

    def clamp_page_size(self, page_size: Optional[int]) -> int:
        if page_size is None:
            page_size = settings.DEFAULT_PAGE_SIZE
        return max(1, min(page_size, self.max_page_size))

    async def query(
        self,
        primary: str,
        additional: Iterable[str] = (),
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> FilteredArticlesPage:
        """Get published articles carrying the primary filter and every resolvable additional one.

        Args:
            primary: Filter id or slug; must resolve
            additional: More filter ids or slugs; unresolvable ones are dropped
            page: 1-based page number (values below 1 read page 1)
            page_size: Articles per page, clamped to 1..max_page_size

        Returns:
            FilteredArticlesPage

        Raises:
            NotFoundError: If the primary identifier does not resolve
        """
        page = max(page, 1)
        page_size = self.clamp_page_size(page_size)

        primary_id = await self.resolver.resolve_identifier(primary)

        additional = list(additional)
        additional_ids = await self.resolver.resolve_identifiers(additional) if additional else []
        if len(additional_ids) < len(additional):
            logger.info(f"Resolved {len(additional_ids)} of {len(additional)} additional filters for '{primary}'")

        filter_ids = list(dict.fromkeys([primary_id, *additional_ids]))
        articles, total = await self.store.query_articles_by_filter_ids(filter_ids, page, page_size)

        return FilteredArticlesPage(
            articles=articles,
            total_count=total,
            page=page,
            page_size=page_size,
            filter_ids=filter_ids,
        )
