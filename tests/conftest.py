from __future__ import annotations

import copy
from typing import Any, Callable, Dict

import httpx
import pytest

from solvent_mcp.models import ApiMetadata


API_URL = "https://solvent.test"
TOKEN = "slvt_test_token_123"


def _crud_endpoints(entity: str, singular: str, query: list, body: list) -> list:
    base = f"/api/v1/{entity}"
    id_param = {"name": "id", "type": "uuid", "required": True, "description": f"The {singular} UUID"}
    return [
        {
            "path": base,
            "method": "GET",
            "description": f"List all {entity}",
            "permission": {"entity": entity, "action": "read"},
            "queryParams": query,
        },
        {
            "path": f"{base}/:id",
            "method": "GET",
            "description": f"Get a single {singular} by ID",
            "permission": {"entity": entity, "action": "read"},
            "pathParams": [id_param],
        },
        {
            "path": base,
            "method": "POST",
            "description": f"Create a new {singular}",
            "permission": {"entity": entity, "action": "write"},
            "bodySchema": body,
        },
        {
            "path": f"{base}/:id",
            "method": "PUT",
            "description": f"Update an existing {singular}",
            "permission": {"entity": entity, "action": "write"},
            "pathParams": [id_param],
            "bodySchema": [dict(field, required=False) for field in body],
        },
        {
            "path": f"{base}/:id",
            "method": "DELETE",
            "description": f"Delete a {singular}",
            "permission": {"entity": entity, "action": "write"},
            "pathParams": [id_param],
        },
    ]


_MONEY_FIELDS = [
    {"name": "amount", "type": "string", "required": True, "description": "Amount, e.g. \"50.00\""},
    {"name": "currency", "type": "string", "required": True},
    {"name": "category_id", "type": "uuid", "required": True},
    {"name": "date", "type": "date", "required": True},
    {"name": "description", "type": "string", "required": False},
]

METADATA_DOCUMENT: Dict[str, Any] = {
    "version": "1.2.0",
    "baseUrl": "/api/v1",
    "authentication": {"type": "bearer", "header": "Authorization", "prefix": "Bearer"},
    "entities": [
        {
            "name": "expenses",
            "singularName": "expense",
            "description": "Money going out",
            "endpoints": _crud_endpoints(
                "expenses",
                "expense",
                query=[
                    {"name": "withCategory", "type": "boolean", "required": False},
                    {"name": "month", "type": "number", "required": False},
                ],
                body=_MONEY_FIELDS,
            ),
        },
        {
            "name": "incomes",
            "singularName": "income",
            "description": "Money coming in",
            "endpoints": _crud_endpoints(
                "incomes",
                "income",
                query=[{"name": "withCategory", "type": "boolean", "required": False}],
                body=_MONEY_FIELDS,
            ),
        },
        {
            "name": "recurrings",
            "singularName": "recurring",
            "description": "Recurring transactions",
            "endpoints": _crud_endpoints(
                "recurrings",
                "recurring",
                query=[
                    {"name": "activeOnly", "type": "boolean", "required": False},
                    {
                        "name": "type",
                        "type": "enum",
                        "required": False,
                        "enumValues": ["expense", "income"],
                    },
                ],
                body=_MONEY_FIELDS[:3]
                + [
                    {
                        "name": "frequency",
                        "type": "enum",
                        "required": True,
                        "enumValues": ["daily", "weekly", "monthly", "yearly"],
                    },
                    {"name": "interval", "type": "number", "required": False},
                ],
            ),
        },
    ],
}


@pytest.fixture
def metadata_document() -> Dict[str, Any]:
    return copy.deepcopy(METADATA_DOCUMENT)


@pytest.fixture
def metadata(metadata_document) -> ApiMetadata:
    return ApiMetadata.model_validate(metadata_document)


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], Callable[[], httpx.AsyncClient]]:
    """Turn a request handler into an ``http_client_factory``."""

    def make_factory(handler):
        def factory() -> httpx.AsyncClient:
            return httpx.AsyncClient(transport=httpx.MockTransport(handler))

        return factory

    return make_factory
