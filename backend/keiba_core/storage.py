from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

import httpx

from .errors import BackendWriteError, SourceFetchError

logger = logging.getLogger(__name__)


class ObjectStorageGateway(Protocol):
    async def fetch_object(self, key: str) -> Optional[str]:
        """Return the object's text, or None when it does not exist."""
        ...

    async def upload_object(self, key: str, body: str) -> None:
        ...


class SupabaseStorageGateway:
    """Reads and writes cache objects in a Supabase Storage bucket."""

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        bucket: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.supabase_url = supabase_url
        self.supabase_key = supabase_key
        self.bucket = bucket
        self._transport = transport

    async def fetch_object(self, key: str) -> Optional[str]:
        endpoint = self._object_endpoint(key)
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.get(endpoint, headers=self._headers())
                if self._is_missing(response):
                    logger.debug("Supabase object %s does not exist", key)
                    return None
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"Failed to fetch {key} from Supabase storage: {exc}") from exc

    async def upload_object(self, key: str, body: str) -> None:
        endpoint = self._object_endpoint(key)
        headers = self._headers()
        headers["Content-Type"] = "application/json"
        # overwrite instead of rejecting an existing object
        headers["x-upsert"] = "true"
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.post(endpoint, content=body.encode("utf-8"), headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise BackendWriteError(f"Failed to upload {key} to Supabase storage: {exc}") from exc
        logger.info("Uploaded %s to Supabase bucket %s", key, self.bucket)

    def _object_endpoint(self, key: str) -> str:
        return f"{self.supabase_url.rstrip('/')}/storage/v1/object/{self.bucket}/{key}"

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.supabase_key,
            "Authorization": f"Bearer {self.supabase_key}",
        }

    @staticmethod
    def _is_missing(response: httpx.Response) -> bool:
        if response.status_code == 404:
            return True
        # Storage reports a missing object as a 400 with a "not_found" error body
        if response.status_code == 400:
            try:
                payload = response.json()
            except ValueError:
                return False
            if isinstance(payload, dict):
                marker = str(payload.get("error") or payload.get("message") or "").lower()
                return "not_found" in marker or "not found" in marker
        return False


class LocalStorageGateway:
    """Keeps cache objects as files under ``data_dir``, mirroring bucket keys."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir

    async def fetch_object(self, key: str) -> Optional[str]:
        path = self.data_dir / key
        try:
            if not path.exists():
                return None
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SourceFetchError(f"Failed to read local data store {path}") from exc

    async def upload_object(self, key: str, body: str) -> None:
        path = self.data_dir / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(body, encoding="utf-8")
        except OSError as exc:
            raise BackendWriteError(f"Failed to write local data store {path}") from exc
        logger.debug("Wrote local data store %s", path)
