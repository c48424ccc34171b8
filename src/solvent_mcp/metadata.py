"""Solvent API metadata client."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .errors import MetadataFetchError
from .executors import HttpClientFactory
from .models import ApiMetadata

logger = logging.getLogger(__name__)


DEFAULT_META_PATH = "/api/v1/meta"


class MetadataClient:
    def __init__(
        self,
        api_url: str,
        token: str,
        meta_path: str = DEFAULT_META_PATH,
        timeout_seconds: float = 30,
        verify_ssl: bool = True,
        http_client_factory: Optional[HttpClientFactory] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.meta_path = meta_path if meta_path.startswith("/") else f"/{meta_path}"
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self._http_client_factory = http_client_factory or self._default_client

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, verify=self.verify_ssl)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    @property
    def url(self) -> str:
        return f"{self.api_url}{self.meta_path}"

    async def fetch_metadata(self) -> ApiMetadata:
        logger.info("Fetching API metadata from %s", self.url)
        try:
            async with self._http_client_factory() as client:
                response = await client.get(self.url, headers=self._headers())
        except httpx.HTTPError as exc:
            raise MetadataFetchError(f"Failed to fetch API metadata: {exc}") from exc

        if response.is_error:
            raise MetadataFetchError(
                f"Failed to fetch API metadata: HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise MetadataFetchError(f"Failed to fetch API metadata: invalid JSON ({exc})") from exc

        return self._parse_envelope(payload)

    def _parse_envelope(self, payload: Any) -> ApiMetadata:
        if not isinstance(payload, dict):
            raise MetadataFetchError(
                f"Unexpected metadata response shape: {type(payload).__name__}"
            )
        if payload.get("success") is not True:
            error = payload.get("error") or "unknown error"
            message = payload.get("message")
            detail = f"{error} ({message})" if message else error
            raise MetadataFetchError(f"Failed to fetch API metadata: {detail}")

        try:
            return ApiMetadata.model_validate(payload.get("data"))
        except ValidationError as exc:
            raise MetadataFetchError(f"Invalid API metadata document: {exc}") from exc
