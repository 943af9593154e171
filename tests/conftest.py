"""Pytest configuration and fixtures for regmaster tests."""

from __future__ import annotations

import asyncio
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from regmaster.managers.registry.cache import TTLCache
from regmaster.managers.registry.transport import RegistryTransport
from regmaster.managers.registry_manager import RegistryManager

REGISTRY_URL = "http://registry.test"

Behaviour = Union[int, Exception]


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRegistry:
    """In-memory registry served through httpx.MockTransport.

    ``failures`` maps a request path to a status code or an exception to raise.
    ``gates`` maps a request path to an event the handler waits on before answering.
    A manifest given as bytes is served verbatim.
    """

    def __init__(self) -> None:
        self.catalog: List[str] = []
        self.tags: Dict[str, Optional[List[str]]] = {}
        self.manifests: Dict[Tuple[str, str], Union[Dict[str, Any], bytes]] = {}
        self.digests: Dict[Tuple[str, str], str] = {}
        self.failures: Dict[str, Behaviour] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.delete_status = 202
        self.gc_status = 404
        self.requests: List[httpx.Request] = []

    def add_image(self, name: str, manifests: Dict[str, Union[Dict[str, Any], bytes]]) -> None:
        self.catalog.append(name)
        self.tags[name] = list(manifests)
        for tag, manifest in manifests.items():
            self.manifests[(name, tag)] = manifest
            self.digests[(name, tag)] = f"sha256:manifest-{name}-{tag}"

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def paths(self, method: str = "GET") -> List[str]:
        return [r.url.path for r in self.requests if r.method == method]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(request)

        gate = self.gates.get(path)
        if gate is not None:
            await gate.wait()

        failure = self.failures.get(path)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return httpx.Response(failure)

        if path == "/v2/":
            return httpx.Response(200, json={})
        if path == "/v2/_catalog":
            return httpx.Response(200, json={"repositories": self.catalog})
        if path == "/v2/_gc":
            return httpx.Response(self.gc_status)

        body = path[len("/v2/"):]
        if body.endswith("/tags/list"):
            name = body[: -len("/tags/list")]
            if name not in self.tags:
                return httpx.Response(404, json={"errors": [{"code": "NAME_UNKNOWN"}]})
            return httpx.Response(200, json={"name": name, "tags": self.tags[name]})

        if "/manifests/" in body:
            name, reference = body.split("/manifests/", 1)
            if request.method == "DELETE":
                return httpx.Response(self.delete_status)
            manifest = self.manifests.get((name, reference))
            if manifest is None:
                return httpx.Response(404, json={"errors": [{"code": "MANIFEST_UNKNOWN"}]})
            headers = {"Docker-Content-Digest": self.digests[(name, reference)]}
            if isinstance(manifest, bytes):
                return httpx.Response(200, content=manifest, headers=headers)
            return httpx.Response(200, json=manifest, headers=headers)

        return httpx.Response(404)


def layer(digest: str, size: int) -> Dict[str, Any]:
    return {
        "mediaType": "application/vnd.docker.image.rootfs.diff.tar.gzip",
        "digest": digest,
        "size": size,
    }


def manifest_with(*layers: Dict[str, Any], config_size: Optional[int] = None) -> Dict[str, Any]:
    manifest: Dict[str, Any] = {
        "schemaVersion": 2,
        "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
        "layers": list(layers),
    }
    if config_size is not None:
        manifest["config"] = {
            "mediaType": "application/vnd.docker.container.image.v1+json",
            "digest": "sha256:config",
            "size": config_size,
        }
    return manifest


async def wait_for(condition: Callable[[], bool], attempts: int = 1000) -> None:
    """Yield to the event loop until the condition holds."""
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def make_transport(fake: FakeRegistry) -> RegistryTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler), base_url=REGISTRY_URL)
    return RegistryTransport(REGISTRY_URL, client=client)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable clock."""
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    """Provide an isolated cache driven by the fake clock."""
    return TTLCache(default_ttl=600, clock=clock)


@pytest.fixture
def fake_registry() -> FakeRegistry:
    """Provide an empty fake registry."""
    return FakeRegistry()


@pytest_asyncio.fixture
async def manager(fake_registry: FakeRegistry, cache: TTLCache) -> AsyncGenerator[RegistryManager, None]:
    """Provide a registry manager backed by the fake registry."""
    registry_manager = RegistryManager(REGISTRY_URL, cache=cache, transport=make_transport(fake_registry))
    yield registry_manager
    await registry_manager.aclose()


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
