"""Shared fixtures: an in-memory transport serving canned documents."""

import asyncio
import json
from collections import Counter

import pytest

from common.transport import Transport
from errors import ResourceNotFoundError


class FakeTransport(Transport):
    """Serves ``url -> text`` from a dict and counts every access."""

    def __init__(self, resources=None, delay=0.0):
        self.resources = dict(resources or {})
        self.delay = delay
        self.fetches = Counter()
        self.probes = Counter()
        self.closed = False

    def add_json(self, url, document):
        self.resources[url] = json.dumps(document)

    async def fetch_text(self, url):
        self.fetches[url] += 1
        await asyncio.sleep(self.delay)
        if url not in self.resources:
            raise ResourceNotFoundError(url, "not found", status=404)
        return self.resources[url]

    async def exists(self, url):
        self.probes[url] += 1
        await asyncio.sleep(0)
        return url in self.resources

    async def _fetch_remote(self, url):
        return await self.fetch_text(url)

    async def _probe_remote(self, url):
        return await self.exists(url)

    async def close(self):
        self.closed = True


@pytest.fixture
def transport():
    return FakeTransport()


JSR_PATH_META = {
    "scope": "std",
    "name": "path",
    "latest": "1.1.0",
    "versions": {
        "0.9.0": {},
        "1.0.0": {},
        "1.1.0": {},
        "1.2.0": {"yanked": True},
    },
}

JSR_PATH_MANIFEST = {
    "name": "@std/path",
    "version": "1.1.0",
    "exports": {
        ".": "./mod.ts",
        "./join": "./join.ts",
        "./posix/": "./posix/",
    },
}


@pytest.fixture
def jsr_transport(transport):
    """Transport pre-loaded with the @std/path package on jsr.io."""
    transport.add_json("https://jsr.io/@std/path/meta.json", JSR_PATH_META)
    transport.add_json("https://jsr.io/@std/path/1.1.0/deno.json", JSR_PATH_MANIFEST)
    return transport


@pytest.fixture
def workspace_transport(jsr_transport):
    """A local Deno workspace with two members, plus @std/path on jsr.io."""
    jsr_transport.add_json(
        "file:///ws/deno.json",
        {
            "workspace": ["./app", "./lib"],
            "imports": {"@std/path": "jsr:@std/path@^1.0.0"},
        },
    )
    jsr_transport.add_json(
        "file:///ws/app/deno.json",
        {
            "name": "@ws/app",
            "imports": {"preact": "https://esm.sh/preact@10"},
        },
    )
    jsr_transport.add_json(
        "file:///ws/lib/deno.json",
        {
            "name": "@ws/lib",
            "version": "0.1.0",
            "exports": {".": "./mod.ts", "./extra/": "./src/extra/"},
        },
    )
    return jsr_transport
