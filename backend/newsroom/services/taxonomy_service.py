"""Filter mutations: create, update (including moves) and guarded delete."""
import logging
import re
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from uuid import UUID

from newsroom.core.exceptions import ConflictError, NotFoundError, ValidationError
from newsroom.db.models.filter import MAX_FILTER_LEVEL
from newsroom.repositories.taxonomy_store import TaxonomyStore

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
UPDATABLE_FIELDS = ("name", "slug", "parent_id", "order_index", "description")


def _parse_id(value: Union[str, UUID, None], error: type = NotFoundError, message: str = "Filter not found") -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise error(message)


def _clean_slug(slug: Optional[str]) -> str:
    slug = (slug or "").strip()
    if slug and not SLUG_PATTERN.match(slug):
        raise ValidationError("Slug may only contain lowercase letters, digits and single hyphens")
    return slug


class TaxonomyService:
    """Editor/admin operations on the filter taxonomy."""

    def __init__(self, store: TaxonomyStore):
        self.store = store

    async def create_filter(self, data: Mapping[str, Any]) -> Any:
        """Create a filter under an optional parent.

        The level is derived from the parent (root = 0) and never taken from
        the request.

        Args:
            data: name, slug, and optionally parent_id, order_index, description

        Returns:
            Created filter row

        Raises:
            ValidationError: Missing name/slug, unknown parent, or too deep
            ConflictError: Slug already in use
        """
        name = (data.get("name") or "").strip()
        if not name or not (data.get("slug") or "").strip():
            raise ValidationError("Name and slug are required")
        slug = _clean_slug(data.get("slug"))

        level = 0
        parent_id = data.get("parent_id")
        if parent_id is not None:
            parent_id = _parse_id(parent_id, ValidationError, "Parent filter not found")
            parent = await self.store.get_filter(parent_id)
            if parent is None:
                raise ValidationError("Parent filter not found")
            if parent.level >= MAX_FILTER_LEVEL:
                raise ValidationError(f"Filters cannot be nested deeper than {MAX_FILTER_LEVEL + 1} levels")
            level = parent.level + 1

        if await self.store.find_filter_by_slug(slug) is not None:
            raise ConflictError(f"Filter slug '{slug}' already exists")

        created = await self.store.create_filter({
            "name": name,
            "slug": slug,
            "parent_id": parent_id,
            "level": level,
            "order_index": data.get("order_index") or 0,
            "description": data.get("description"),
        })
        logger.info(f"Created filter {created.slug} ({created.id}) at level {level}")
        return created

    async def update_filter(self, filter_id: Union[str, UUID], updates: Mapping[str, Any]) -> Any:
        """Apply a partial update.

        Moving a filter (changing parent_id) recomputes the level of the
        filter and of its whole subtree.

        Raises:
            NotFoundError: Unknown filter
            ValidationError: Blank name/slug, move into own subtree, unknown
                parent, or a move that would exceed the maximum depth
            ConflictError: Slug already in use by another filter
        """
        filter_id = _parse_id(filter_id)
        current = await self.store.get_filter(filter_id)
        if current is None:
            raise NotFoundError("Filter not found")

        values: Dict[str, Any] = {key: updates[key] for key in UPDATABLE_FIELDS if key in updates}
        if not values:
            return current

        if "name" in values:
            values["name"] = (values["name"] or "").strip()
            if not values["name"]:
                raise ValidationError("Name cannot be empty")

        if "slug" in values:
            values["slug"] = _clean_slug(values["slug"])
            if not values["slug"]:
                raise ValidationError("Slug cannot be empty")
            if values["slug"] != current.slug:
                existing = await self.store.find_filter_by_slug(values["slug"])
                if existing is not None and existing.id != filter_id:
                    raise ConflictError(f"Filter slug '{values['slug']}' already exists")

        if "order_index" in values and values["order_index"] is None:
            values["order_index"] = 0

        relevel: Dict[UUID, int] = {}
        if "parent_id" in values:
            new_parent_id = None if values["parent_id"] is None else _parse_id(values["parent_id"], ValidationError, "Parent filter not found")
            values["parent_id"] = new_parent_id
            if new_parent_id != current.parent_id:
                values["level"], relevel = await self._plan_move(filter_id, new_parent_id)

        updated = await self.store.update_filter(filter_id, values, relevel)
        if updated is None:
            raise NotFoundError("Filter not found")

        logger.info(f"Updated filter {filter_id}: {sorted(values)} ({len(relevel)} descendants re-levelled)")
        return updated

    async def _plan_move(self, filter_id: UUID, new_parent_id: Optional[UUID]) -> Tuple[int, Dict[UUID, int]]:
        """New level for a moved filter plus the new level of each descendant."""
        rows = await self.store.list_all_filters()
        by_id = {row.id: row for row in rows}
        children: Dict[UUID, List[UUID]] = defaultdict(list)
        for row in rows:
            if row.parent_id is not None:
                children[row.parent_id].append(row.id)

        depth_below: Dict[UUID, int] = {}
        pending = [(child_id, 1) for child_id in children.get(filter_id, [])]
        while pending:
            node_id, depth = pending.pop()
            if node_id in depth_below or node_id == filter_id:
                continue
            depth_below[node_id] = depth
            pending.extend((child_id, depth + 1) for child_id in children.get(node_id, []))

        if new_parent_id is None:
            new_level = 0
        else:
            if new_parent_id == filter_id or new_parent_id in depth_below:
                raise ValidationError("A filter cannot be moved under itself or one of its descendants")
            parent = by_id.get(new_parent_id)
            if parent is None:
                raise ValidationError("Parent filter not found")
            new_level = parent.level + 1

        deepest = max(depth_below.values(), default=0)
        if new_level + deepest > MAX_FILTER_LEVEL:
            raise ValidationError(f"Filters cannot be nested deeper than {MAX_FILTER_LEVEL + 1} levels")

        return new_level, {node_id: new_level + depth for node_id, depth in depth_below.items()}

    async def delete_filter(self, filter_id: Union[str, UUID]) -> None:
        """Delete a filter no article or child filter references.

        Raises:
            NotFoundError: Unknown filter
            ConflictError: Articles or child filters still reference it
        """
        filter_id = _parse_id(filter_id)
        await self.store.delete_filter(filter_id)
        logger.info(f"Deleted filter {filter_id}")
