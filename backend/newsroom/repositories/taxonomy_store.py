"""Storage contract consumed by the filter resolver and article query engine."""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple
from uuid import UUID


class TaxonomyStore(Protocol):
    """Persistence capability for filters and the article <-> filter link.

    Rows returned by the store expose the Filter columns as attributes
    (id, name, slug, parent_id, level, order_index, description, created_at).
    `FilterRepository` implements this against the database; tests use an
    in-memory implementation.
    """

    async def list_all_filters(self) -> List[Any]:
        """Return every filter row, at every level, in no particular order."""
        ...

    async def get_filter(self, filter_id: UUID) -> Optional[Any]:
        ...

    async def find_filter_by_slug(self, slug: str) -> Optional[Any]:
        ...

    async def get_filters_by_ids(self, filter_ids: Iterable[UUID]) -> List[Any]:
        ...

    async def find_filters_by_slugs(self, slugs: Iterable[str]) -> List[Any]:
        ...

    async def count_articles_for_filter(self, filter_id: UUID) -> int:
        """Published articles linked directly to this filter (no roll-up)."""
        ...

    async def count_articles_by_filter(self) -> Dict[UUID, int]:
        """Direct published-article counts for every linked filter in one pass."""
        ...

    async def create_filter(self, values: Mapping[str, Any]) -> Any:
        ...

    async def update_filter(
        self,
        filter_id: UUID,
        values: Mapping[str, Any],
        relevel: Optional[Mapping[UUID, int]] = None,
    ) -> Optional[Any]:
        ...

    async def delete_filter(self, filter_id: UUID) -> None:
        """Delete an unreferenced leaf filter.

        Raises NotFoundError for an unknown id and ConflictError while
        articles or child filters still reference it.
        """
        ...

    async def query_articles_by_filter_ids(
        self, filter_ids: Sequence[UUID], page: int, page_size: int
    ) -> Tuple[List[Any], int]:
        """Published articles linked to every id, newest first, plus the total."""
        ...
