"""Repository exports."""
from newsroom.repositories.filter_repository import FilterRepository
from newsroom.repositories.profile_repository import ProfileRepository
from newsroom.repositories.taxonomy_store import TaxonomyStore

__all__ = [
    "FilterRepository",
    "ProfileRepository",
    "TaxonomyStore",
]
