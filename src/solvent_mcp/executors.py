"""Request synthesis and REST execution for generated tools."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote, urlencode

import httpx

from .models import BODY_METHODS, EndpointDescriptor, HttpMethod

logger = logging.getLogger(__name__)


HttpClientFactory = Callable[[], httpx.AsyncClient]


class ExecutionError(Exception):
    pass


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[str] = None

    def json_body(self) -> Optional[Dict[str, Any]]:
        return json.loads(self.body) if self.body is not None else None


def build_request(
    api_url: str,
    token: str,
    endpoint: EndpointDescriptor,
    arguments: Mapping[str, Any],
) -> PreparedRequest:
    """Map a tool argument bag onto a concrete HTTP request for ``endpoint``."""
    url = api_url.rstrip("/") + _build_path(endpoint, arguments)
    query = _build_query(endpoint, arguments)
    if query:
        url = f"{url}?{query}"

    body = _build_body(endpoint, arguments)
    return PreparedRequest(
        method=endpoint.method.value,
        url=url,
        headers={
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        },
        body=json.dumps(body) if body is not None else None,
    )


def stringify_argument(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _build_path(endpoint: EndpointDescriptor, arguments: Mapping[str, Any]) -> str:
    path = endpoint.path
    for param in endpoint.path_params:
        value = arguments.get(param.name)
        if value is None:
            continue
        segment = quote(stringify_argument(value), safe="")
        pattern = re.compile(rf":{re.escape(param.name)}(?![A-Za-z0-9_])")
        path = pattern.sub(lambda _match: segment, path, count=1)
    return path


def _build_query(endpoint: EndpointDescriptor, arguments: Mapping[str, Any]) -> str:
    if endpoint.method != HttpMethod.GET:
        return ""
    pairs: List[Tuple[str, str]] = []
    for param in endpoint.query_params:
        value = arguments.get(param.name)
        if value is None:
            continue
        pairs.append((param.name, stringify_argument(value)))
    return urlencode(pairs)


def _build_body(
    endpoint: EndpointDescriptor, arguments: Mapping[str, Any]
) -> Optional[Dict[str, Any]]:
    if endpoint.method not in BODY_METHODS:
        return None
    body: Dict[str, Any] = {}
    for field in endpoint.body_schema:
        if field.name in arguments:
            body[field.name] = arguments[field.name]
    # No matching fields means no body at all, not an empty object.
    return body or None


# InvalidURL and friends are not HTTPError subclasses.
_TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.CookieConflict, httpx.StreamError)


class RestExecutor:
    def __init__(
        self,
        timeout_seconds: float = 30,
        verify_ssl: bool = True,
        http_client_factory: Optional[HttpClientFactory] = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self._http_client_factory = http_client_factory or self._default_client

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, verify=self.verify_ssl)

    async def execute(self, request: PreparedRequest) -> Any:
        try:
            async with self._http_client_factory() as client:
                response = await client.request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    content=request.body,
                )
        except _TRANSPORT_ERRORS as exc:
            raise ExecutionError(f"{type(exc).__name__}: {exc}") from exc

        if response.is_error:
            raise ExecutionError(self._describe_status(response))

        if not response.content:
            return {"status": "ok"}
        try:
            return response.json()
        except ValueError as exc:
            raise ExecutionError(f"Invalid JSON response from {request.url}: {exc}") from exc

    def _describe_status(self, response: httpx.Response) -> str:
        message = f"HTTP {response.status_code}"
        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return f"{message}: {text}" if text else message

        if isinstance(payload, dict):
            detail = payload.get("error") or payload.get("message") or payload.get("detail")
            if detail:
                return f"{message}: {detail}"
        return message
