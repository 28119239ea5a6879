"""Services package for taxonomy business logic."""

from newsroom.services.filter_resolver import FilterResolver
from newsroom.services.filtered_articles import FilteredArticleQueryEngine, FilteredArticlesPage
from newsroom.services.taxonomy_service import TaxonomyService

__all__ = ["FilterResolver", "FilteredArticleQueryEngine", "FilteredArticlesPage", "TaxonomyService"]
