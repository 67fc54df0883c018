# shopbati/services/assets.py
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional, Protocol

import httpx


class AssetLoadError(Exception):
    """The asset could not be fetched. Callers fall back instead of failing."""


class AssetLoader(Protocol):
    async def load(self) -> bytes:
        ...


class FileAssetLoader:
    """Reads the logo from disk (server deployments ship it under public/)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def load(self) -> bytes:
        try:
            # keep disk reads off the event loop
            data = await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise AssetLoadError(f"cannot read {self.path}: {e}") from e
        if not data:
            raise AssetLoadError(f"{self.path} is empty")
        return data


class HttpAssetLoader:
    """Fetches the logo over HTTP, e.g. from the storefront's static files."""

    def __init__(self, url: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def load(self) -> bytes:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise AssetLoadError(f"cannot fetch {self.url}: {e}") from e
        if not resp.content:
            raise AssetLoadError(f"{self.url} returned an empty body")
        return resp.content


def build_logo_loader(logo_path: Optional[str], logo_url: Optional[str]) -> Optional[AssetLoader]:
    if logo_url:
        return HttpAssetLoader(logo_url)
    if logo_path:
        return FileAssetLoader(logo_path)
    return None
