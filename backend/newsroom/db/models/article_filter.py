"""Article <-> Filter link table."""
from sqlalchemy import Column, ForeignKey, Table, Uuid

from newsroom.db.base import Base

# Pure link rows keyed by (article_id, filter_id). Filters referenced here
# cannot be deleted; removing an article drops its links.
article_filters = Table(
    "article_filters",
    Base.metadata,
    Column("article_id", Uuid(as_uuid=True), ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("filter_id", Uuid(as_uuid=True), ForeignKey("filters.id", ondelete="RESTRICT"), primary_key=True, index=True),
)
