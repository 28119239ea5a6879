"""In-memory filter tree: assembly from flat rows, traversal, stats and selection."""
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from newsroom.db.models.filter import MAX_FILTER_LEVEL

logger = logging.getLogger(__name__)


@dataclass
class FilterNode:
    """A filter with its children attached.

    `children` is always a list (empty for leaves). `article_count` is None
    unless counts were requested when the tree was built.
    """

    id: UUID
    name: str
    slug: str
    parent_id: Optional[UUID]
    level: int
    order_index: int = 0
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    children: List["FilterNode"] = field(default_factory=list)
    article_count: Optional[int] = None

    @classmethod
    def from_row(cls, row: Any) -> "FilterNode":
        return cls(
            id=row.id,
            name=row.name,
            slug=row.slug,
            parent_id=row.parent_id,
            level=row.level,
            order_index=row.order_index or 0,
            description=row.description,
            created_at=getattr(row, "created_at", None),
        )


@dataclass
class FilterForest:
    """Ordered root nodes plus whether article counts were computed."""

    roots: List[FilterNode]
    counts_included: bool = False

    def __iter__(self):
        return iter(self.roots)

    def __len__(self) -> int:
        return len(self.roots)


@dataclass
class FilterStats:
    total: int
    level0_count: int
    level1_count: int
    level2_count: int
    with_articles_count: int
    by_level: Dict[int, int] = field(default_factory=dict)


def _sibling_key(node: FilterNode):
    return (node.order_index, node.name)


def build_hierarchy(rows: Iterable[Any], counts: Optional[Mapping[UUID, int]] = None) -> FilterForest:
    """Assemble flat filter rows into an ordered forest.

    Roots are rows without a parent. Children are attached top-down from the
    roots, so a row can only appear once and a parent loop is never entered.
    Siblings are ordered by order_index, then name.

    A row whose parent_id points at a missing row becomes a root (with a
    warning) instead of disappearing from the tree.

    Args:
        rows: Flat filter rows from the taxonomy store
        counts: Direct published-article count per filter ID. When given,
            every node gets an article_count (0 if absent from the mapping).

    Returns:
        FilterForest of level-0 (and orphaned) nodes
    """
    nodes: Dict[UUID, FilterNode] = {}
    for row in rows:
        nodes[row.id] = FilterNode.from_row(row)

    roots: List[FilterNode] = []
    children_by_parent: Dict[UUID, List[FilterNode]] = defaultdict(list)
    for node in nodes.values():
        if node.parent_id is None:
            roots.append(node)
        elif node.parent_id not in nodes:
            logger.warning(
                f"Filter {node.slug} ({node.id}) references missing parent {node.parent_id}; treating it as a root"
            )
            roots.append(node)
        else:
            children_by_parent[node.parent_id].append(node)

    roots.sort(key=_sibling_key)

    attached = 0
    pending = list(roots)
    while pending:
        node = pending.pop()
        attached += 1
        node.children = sorted(children_by_parent.get(node.id, []), key=_sibling_key)
        pending.extend(node.children)

    if attached < len(nodes):
        logger.warning(f"{len(nodes) - attached} filters are not reachable from any root and were left out")

    if counts is not None:
        for node in nodes.values():
            node.article_count = counts.get(node.id, 0)

    return FilterForest(roots=roots, counts_included=counts is not None)


def flatten(forest: Iterable[FilterNode]) -> List[FilterNode]:
    """Pre-order list of every node in the forest."""
    result: List[FilterNode] = []

    def walk(nodes: Iterable[FilterNode]) -> None:
        for node in nodes:
            result.append(node)
            walk(node.children)

    walk(forest)
    return result


def find_by_id(forest: Iterable[FilterNode], filter_id: Hashable) -> Optional[FilterNode]:
    for node in flatten(forest):
        if node.id == filter_id:
            return node
    return None


def get_filters_by_ids(forest: Iterable[FilterNode], filter_ids: Sequence[Hashable]) -> List[FilterNode]:
    """Nodes for the given IDs in request order; unknown IDs are skipped."""
    by_id = {node.id: node for node in flatten(forest)}
    return [by_id[filter_id] for filter_id in filter_ids if filter_id in by_id]


def compute_stats(forest: Iterable[FilterNode]) -> FilterStats:
    """Aggregate node counts per level and nodes carrying published articles.

    with_articles_count is only meaningful for a forest built with counts.
    """
    nodes = flatten(forest)
    by_level = Counter(node.level for node in nodes)
    return FilterStats(
        total=len(nodes),
        level0_count=by_level.get(0, 0),
        level1_count=by_level.get(1, 0),
        level2_count=by_level.get(2, 0),
        with_articles_count=sum(1 for node in nodes if (node.article_count or 0) > 0),
        by_level=dict(sorted(by_level.items())),
    )


def select_filter(forest: Iterable[FilterNode], selected: Sequence[Hashable], filter_id: Hashable) -> List[Hashable]:
    """Add a filter to a selection while keeping a single path through the levels.

    Any selected filter at the same level or deeper is dropped, so picking a
    new level-0 filter clears the level-1 and level-2 choices. IDs unknown to
    the forest are simply appended.
    """
    if filter_id in selected:
        return list(selected)

    levels = {node.id: node.level for node in flatten(forest)}
    if filter_id not in levels:
        return [*selected, filter_id]

    level = levels[filter_id]
    kept = [item for item in selected if item not in levels or levels[item] < level]
    return [*kept, filter_id]


def deselect_filter(forest: Iterable[FilterNode], selected: Sequence[Hashable], filter_id: Hashable) -> List[Hashable]:
    """Remove a filter from a selection along with any deeper-level choices."""
    levels = {node.id: node.level for node in flatten(forest)}
    remaining = [item for item in selected if item != filter_id]
    if filter_id not in levels or levels[filter_id] >= MAX_FILTER_LEVEL:
        return remaining

    level = levels[filter_id]
    return [item for item in remaining if item not in levels or levels[item] <= level]
