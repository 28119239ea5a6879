"""Article model (only the columns the taxonomy queries need)."""
import enum
import uuid as uuid_pkg
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import relationship

from newsroom.db.base import Base
from newsroom.db.models.article_filter import article_filters


class ArticleStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Article(Base):
    """Publication article. Only published articles are visible through filters."""

    __tablename__ = "articles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid_pkg.uuid4)
    title = Column(String(500), nullable=False)
    slug = Column(String(500), unique=True, nullable=False, index=True)
    excerpt = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ArticleStatus.DRAFT.value)  # draft | published | archived
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    filters = relationship("Filter", secondary=article_filters, lazy="selectin", order_by="Filter.level")

    __table_args__ = (Index("idx_articles_status_published", "status", "published_at"),)

    def __repr__(self):
        return f"<Article {self.slug} ({self.status})>"
