"""Tests for TaxonomyService."""
import uuid

import pytest

from newsroom.core.exceptions import ConflictError, NotFoundError, ValidationError
from newsroom.services.taxonomy_service import TaxonomyService


@pytest.fixture
def seeded(store):
    markets = store.add_filter("Markets", "markets")
    research = store.add_filter("Research", "research")
    defi = store.add_filter("DeFi", "defi", parent=markets)
    lending = store.add_filter("Lending", "lending", parent=defi)
    return {"markets": markets, "research": research, "defi": defi, "lending": lending}


class TestCreate:
    @pytest.mark.asyncio
    async def test_root_filter_gets_level_zero(self, store):
        service = TaxonomyService(store)

        created = await service.create_filter({"name": " Markets ", "slug": "markets"})

        assert created.level == 0
        assert created.name == "Markets"
        assert created.parent_id is None
        assert created.order_index == 0

    @pytest.mark.asyncio
    async def test_level_is_derived_from_parent(self, store, seeded):
        service = TaxonomyService(store)

        created = await service.create_filter(
            {"name": "DEX", "slug": "dex", "parent_id": str(seeded["defi"].id), "level": 0}
        )

        assert created.level == 2
        assert created.parent_id == seeded["defi"].id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [{"slug": "x"}, {"name": "X"}, {"name": "  ", "slug": "x"}])
    async def test_name_and_slug_required(self, store, data):
        service = TaxonomyService(store)

        with pytest.raises(ValidationError, match="Name and slug are required"):
            await service.create_filter(data)

    @pytest.mark.asyncio
    async def test_rejects_malformed_slug(self, store):
        service = TaxonomyService(store)

        with pytest.raises(ValidationError):
            await service.create_filter({"name": "Bad", "slug": "Bad Slug"})

    @pytest.mark.asyncio
    async def test_rejects_unknown_parent(self, store):
        service = TaxonomyService(store)

        with pytest.raises(ValidationError, match="Parent filter not found"):
            await service.create_filter({"name": "X", "slug": "x", "parent_id": uuid.uuid4()})

    @pytest.mark.asyncio
    async def test_rejects_child_of_level_two(self, store, seeded):
        service = TaxonomyService(store)

        with pytest.raises(ValidationError, match="deeper than 3 levels"):
            await service.create_filter({"name": "X", "slug": "x", "parent_id": seeded["lending"].id})

    @pytest.mark.asyncio
    async def test_duplicate_slug_conflicts(self, store, seeded):
        service = TaxonomyService(store)

        with pytest.raises(ConflictError, match="already exists"):
            await service.create_filter({"name": "Other", "slug": "defi"})


class TestUpdate:
    @pytest.mark.asyncio
    async def test_rename(self, store, seeded):
        service = TaxonomyService(store)

        updated = await service.update_filter(str(seeded["defi"].id), {"name": "Decentralised Finance"})

        assert updated.name == "Decentralised Finance"
        assert updated.slug == "defi"

    @pytest.mark.asyncio
    async def test_unknown_filter(self, store, seeded):
        service = TaxonomyService(store)

        with pytest.raises(NotFoundError):
            await service.update_filter(uuid.uuid4(), {"name": "X"})
        with pytest.raises(NotFoundError):
            await service.update_filter("not-a-uuid", {"name": "X"})

    @pytest.mark.asyncio
    async def test_empty_update_returns_current(self, store, seeded):
        service = TaxonomyService(store)

        result = await service.update_filter(seeded["defi"].id, {})

        assert result is seeded["defi"]

    @pytest.mark.asyncio
    async def test_slug_taken_by_another_filter(self, store, seeded):
        service = TaxonomyService(store)

        with pytest.raises(ConflictError):
            await service.update_filter(seeded["defi"].id, {"slug": "research"})

    @pytest.mark.asyncio
    async def test_keeping_own_slug_is_allowed(self, store, seeded):
        service = TaxonomyService(store)

        updated = await service.update_filter(seeded["defi"].id, {"slug": "defi", "order_index": 4})

        assert updated.order_index == 4

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, store, seeded):
        service = TaxonomyService(store)

        with pytest.raises(ValidationError):
            await service.update_filter(seeded["defi"].id, {"name": "   "})

    @pytest.mark.asyncio
    async def test_move_relevels_subtree(self, store, seeded):
        service = TaxonomyService(store)

        moved = await service.update_filter(seeded["defi"].id, {"parent_id": None})

        assert moved.parent_id is None
        assert moved.level == 0
        assert store.filters[seeded["lending"].id].level == 1

    @pytest.mark.asyncio
    async def test_move_under_another_root(self, store, seeded):
        service = TaxonomyService(store)

        moved = await service.update_filter(seeded["defi"].id, {"parent_id": str(seeded["research"].id)})

        assert moved.parent_id == seeded["research"].id
        assert moved.level == 1
        assert store.filters[seeded["lending"].id].level == 2

    @pytest.mark.asyncio
    async def test_move_under_own_descendant_rejected(self, store, seeded):
        service = TaxonomyService(store)

        with pytest.raises(ValidationError, match="under itself or one of its descendants"):
            await service.update_filter(seeded["markets"].id, {"parent_id": seeded["lending"].id})
        with pytest.raises(ValidationError):
            await service.update_filter(seeded["markets"].id, {"parent_id": seeded["markets"].id})

    @pytest.mark.asyncio
    async def test_move_that_would_exceed_depth_rejected(self, store, seeded):
        service = TaxonomyService(store)
        nft = store.add_filter("NFT", "nft", parent=seeded["markets"])

        # defi has a child, so under nft (level 1) its child would land on level 3
        with pytest.raises(ValidationError, match="deeper than 3 levels"):
            await service.update_filter(seeded["defi"].id, {"parent_id": nft.id})

        assert store.filters[seeded["defi"].id].parent_id == seeded["markets"].id


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_unreferenced_leaf(self, store, seeded):
        service = TaxonomyService(store)

        await service.delete_filter(str(seeded["research"].id))

        assert seeded["research"].id not in store.filters

    @pytest.mark.asyncio
    async def test_delete_referenced_filter_conflicts(self, store, seeded):
        store.add_article("rates", [seeded["lending"]])
        service = TaxonomyService(store)

        with pytest.raises(ConflictError, match="referenced by articles"):
            await service.delete_filter(seeded["lending"].id)

        assert seeded["lending"].id in store.filters

    @pytest.mark.asyncio
    async def test_delete_filter_with_children_conflicts(self, store, seeded):
        service = TaxonomyService(store)

        with pytest.raises(ConflictError, match="child filters"):
            await service.delete_filter(seeded["defi"].id)

    @pytest.mark.asyncio
    async def test_delete_unknown(self, store, seeded):
        service = TaxonomyService(store)

        with pytest.raises(NotFoundError):
            await service.delete_filter(uuid.uuid4())
        with pytest.raises(NotFoundError):
            await service.delete_filter("garbage")
