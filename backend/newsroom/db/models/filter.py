"""Filter model: a node in the three-level article taxonomy."""
import uuid as uuid_pkg
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid

from newsroom.db.base import Base

MAX_FILTER_LEVEL = 2


class Filter(Base):
    """Taxonomy node. Children are derived from parent_id, never stored as a list."""

    __tablename__ = "filters"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid_pkg.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    parent_id = Column(Uuid(as_uuid=True), ForeignKey("filters.id", ondelete="RESTRICT"), nullable=True, index=True)
    level = Column(Integer, nullable=False, default=0)
    order_index = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint(f"level >= 0 AND level <= {MAX_FILTER_LEVEL}", name="ck_filters_level_range"),
        Index("idx_filters_parent_order", "parent_id", "order_index"),
    )

    def __repr__(self):
        return f"<Filter {self.slug} (level {self.level})>"
