"""Filter resolver: builds the filter tree and maps slugs or ids to filter ids."""
import logging
import re
from typing import Dict, Iterable, List
from uuid import UUID

from newsroom.core.exceptions import NotFoundError, PersistenceError
from newsroom.repositories.taxonomy_store import TaxonomyStore
from newsroom.services.filter_tree import FilterForest, FilterStats, build_hierarchy, compute_stats

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_uuid(value: str) -> bool:
    """True when the value looks like a filter id rather than a slug."""
    return bool(UUID_PATTERN.match(value))


class FilterResolver:
    """Reads the taxonomy store and resolves human-facing filter identifiers."""

    def __init__(self, store: TaxonomyStore):
        """Initialize the resolver.

        Args:
            store: Taxonomy store (FilterRepository or an in-memory store)
        """
        self.store = store

    async def get_hierarchy(self, include_counts: bool = False) -> FilterForest:
        """Load every filter and assemble the ordered forest.

        Args:
            include_counts: Annotate each node with its direct published-article count

        Returns:
            FilterForest of root filters with children populated
        """
        rows = await self.store.list_all_filters()
        counts = await self._article_counts() if include_counts else None
        forest = build_hierarchy(rows, counts)
        logger.info(f"Built filter hierarchy: {len(rows)} filters, {len(forest)} roots, counts={include_counts}")
        return forest

    async def get_stats(self, include_counts: bool = False) -> FilterStats:
        forest = await self.get_hierarchy(include_counts=include_counts)
        return compute_stats(forest)

    async def _article_counts(self) -> Dict[UUID, int]:
        # Read path: a failed count query leaves every count at 0.
        try:
            return await self.store.count_articles_by_filter()
        except PersistenceError as e:
            logger.warning(f"Article counts unavailable, reporting 0 for every filter: {e.message}")
            return {}

    async def resolve_identifier(self, value: str) -> UUID:
        """Resolve a filter id or slug to a stored filter id.

        Args:
            value: UUID string or slug

        Returns:
            Filter UUID

        Raises:
            NotFoundError: If no filter has that id or slug
        """
        if is_uuid(value):
            filter_id = UUID(value)
            if await self.store.get_filter(filter_id) is None:
                raise NotFoundError("Filter not found")
            return filter_id

        row = await self.store.find_filter_by_slug(value)
        if row is None:
            raise NotFoundError("Filter not found")
        return row.id

    async def resolve_identifiers(self, values: Iterable[str]) -> List[UUID]:
        """Resolve several ids or slugs at once, dropping the ones that do not resolve.

        Ids and slugs are each looked up in a single batched query. The result
        keeps request order without duplicates.
        """
        values = list(values)
        requested_ids = [UUID(value) for value in values if is_uuid(value)]
        slugs = [value for value in values if not is_uuid(value)]

        known_ids = {row.id for row in await self.store.get_filters_by_ids(requested_ids)}
        ids_by_slug = {row.slug: row.id for row in await self.store.find_filters_by_slugs(slugs)}

        resolved: List[UUID] = []
        for value in values:
            if is_uuid(value):
                filter_id = UUID(value) if UUID(value) in known_ids else None
            else:
                filter_id = ids_by_slug.get(value)

            if filter_id is None:
                logger.info(f"Ignoring unknown filter identifier '{value}'")
                continue
            if filter_id not in resolved:
                resolved.append(filter_id)

        return resolved
