"""Tests for tag deletion and garbage collection."""

import pytest

from regmaster.managers.registry.base import DeletionDisabledError, RegistryApiError
from regmaster.managers.registry.utils import cumulative_size_path, tags_path

from .conftest import layer, manifest_with


@pytest.fixture
def app(fake_registry):
    fake_registry.add_image("app", {
        "1.0": manifest_with(layer("sha256:l1", 10), config_size=1),
        "2.0": manifest_with(layer("sha256:l2", 20)),
    })
    return fake_registry


async def warm_cache(manager):
    await manager.fetch_image_tags("app")
    await manager.calculate_cumulative_image_size("app", ["1.0", "2.0"])


@pytest.mark.asyncio
async def test_delete_by_content_digest(manager, app):
    assert await manager.delete_image_tag("app", "1.0") is True

    assert app.paths("DELETE") == ["/v2/app/manifests/sha256:manifest-app-1.0"]


@pytest.mark.asyncio
async def test_digest_from_body_wins(manager, app):
    app.manifests[("app", "2.0")]["digest"] = "sha256:from-body"

    await manager.delete_image_tag("app", "2.0")

    assert app.paths("DELETE") == ["/v2/app/manifests/sha256:from-body"]


@pytest.mark.asyncio
async def test_success_invalidates_related_cache(manager, app, cache):
    await warm_cache(manager)

    await manager.delete_image_tag("app", "1.0")

    assert cache.get(cache.make_key(tags_path("app"))) is None
    assert cache.remove_prefix(cumulative_size_path("app")) == 0
    assert cache.get(cache.make_key("/v2/app/manifests/2.0")) is not None


@pytest.mark.asyncio
async def test_manifest_failure_without_force_raises(manager, app, cache):
    await warm_cache(manager)
    size_before = cache.stats()["size"]
    app.failures["/v2/app/manifests/3.0"] = 404

    with pytest.raises(RegistryApiError) as exc_info:
        await manager.delete_image_tag("app", "3.0")

    assert exc_info.value.status == 404
    assert app.paths("DELETE") == []
    assert cache.stats()["size"] == size_before


@pytest.mark.asyncio
async def test_manifest_failure_with_force_succeeds(manager, app, cache):
    await warm_cache(manager)
    app.failures["/v2/app/manifests/3.0"] = 500

    assert await manager.delete_image_tag("app", "3.0", force_remove=True) is True

    assert app.paths("DELETE") == []
    assert cache.get(cache.make_key(tags_path("app"))) is None


@pytest.mark.asyncio
async def test_delete_disabled(manager, app, cache):
    await warm_cache(manager)
    app.delete_status = 405

    with pytest.raises(DeletionDisabledError) as exc_info:
        await manager.delete_image_tag("app", "1.0")

    assert exc_info.value.status == 405
    assert "REGISTRY_STORAGE_DELETE_ENABLED" in str(exc_info.value)
    assert cache.get(cache.make_key(tags_path("app"))) == ["1.0", "2.0"]


@pytest.mark.asyncio
async def test_manifest_405_maps_to_delete_disabled(manager, app):
    app.failures["/v2/app/manifests/1.0"] = 405

    with pytest.raises(DeletionDisabledError):
        await manager.delete_image_tag("app", "1.0")


@pytest.mark.asyncio
async def test_delete_failure_with_force_succeeds(manager, app):
    app.delete_status = 500

    assert await manager.delete_image_tag("app", "1.0", force_remove=True) is True
    assert len(app.paths("DELETE")) == 1


@pytest.mark.asyncio
async def test_delete_failure_without_force_raises(manager, app):
    app.delete_status = 404

    with pytest.raises(RegistryApiError) as exc_info:
        await manager.delete_image_tag("app", "1.0")
    assert exc_info.value.status == 404


@pytest.mark.asyncio
async def test_garbage_collection_unsupported(manager, fake_registry):
    with pytest.raises(RegistryApiError) as exc_info:
        await manager.run_garbage_collection()
    assert exc_info.value.status == 404


@pytest.mark.asyncio
async def test_garbage_collection(manager, fake_registry):
    fake_registry.gc_status = 200

    assert await manager.run_garbage_collection() is True
    assert fake_registry.count("POST", "/v2/_gc") == 1


@pytest.mark.asyncio
async def test_force_path_invalidates_manifest_and_cumulative_entries(manager, app, cache):
    await warm_cache(manager)
    app.delete_status = 500

    assert await manager.delete_image_tag("app", "1.0", force_remove=True) is True

    assert cache.get(cache.make_key("/v2/app/manifests/1.0")) is None
    assert cache.remove_prefix(cumulative_size_path("app")) == 0
    assert cache.get(cache.make_key("/v2/app/manifests/2.0")) is not None


@pytest.mark.asyncio
async def test_missing_digest_without_force_raises(manager, app, cache):
    await warm_cache(manager)
    size_before = cache.stats()["size"]
    app.digests[("app", "3.0")] = ""
    app.manifests[("app", "3.0")] = manifest_with(layer("sha256:l3", 30))

    with pytest.raises(RegistryApiError):
        await manager.delete_image_tag("app", "3.0")

    assert app.paths("DELETE") == []
    assert cache.get(cache.make_key(tags_path("app"))) == ["1.0", "2.0"]
    assert cache.stats()["size"] == size_before + 1


@pytest.mark.asyncio
async def test_missing_digest_with_force_skips_delete_request(manager, app):
    app.digests[("app", "3.0")] = ""
    app.manifests[("app", "3.0")] = manifest_with(layer("sha256:l3", 30))

    assert await manager.delete_image_tag("app", "3.0", force_remove=True) is True
    assert app.paths("DELETE") == []
