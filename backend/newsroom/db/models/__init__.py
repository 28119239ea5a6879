"""Database models package."""
from newsroom.db.models.article import Article, ArticleStatus
from newsroom.db.models.article_filter import article_filters
from newsroom.db.models.filter import Filter
from newsroom.db.models.profile import Profile, UserRole

__all__ = [
    "Article",
    "ArticleStatus",
    "Filter",
    "Profile",
    "UserRole",
    "article_filters",
]
