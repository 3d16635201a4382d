from typing import Any

from flask import request

from recordcrate.catalog import SqlCatalogStore
from recordcrate.errors import InvalidRequestError
from recordcrate.importer import AlbumImporter
from recordcrate.providers.registry import get_registry
from recordcrate.search import SearchAggregator


def get_search_aggregator() -> SearchAggregator:
    return SearchAggregator(get_registry(), SqlCatalogStore())


def get_album_importer() -> AlbumImporter:
    return AlbumImporter(get_registry(), SqlCatalogStore())


def json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidRequestError("Invalid request body")
    return body


def bearer_token() -> str:
    """Token from an ``Authorization: Bearer <token>`` header, or ""."""
    parts = request.headers.get("Authorization", "").split()
    if len(parts) != 2 or parts[0].lower() != "bearer":  # noqa: PLR2004
        return ""
    return parts[1].strip()


def string_field(body: dict[str, Any], key: str, message: str) -> str:
    """Stripped string value of ``key``, "" when absent."""
    value = body.get(key) or ""
    if not isinstance(value, str):
        raise InvalidRequestError(message)
    return value.strip()
