"""Fetching API description documents and resolving internal references."""

import json
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import httpx
import yaml

from nl_api.errors import SchemaLoadError, UpstreamFailureError

logger = logging.getLogger(__name__)

ApiDocument = Mapping[str, Any]


def parse_api_description(text: str) -> ApiDocument:
    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise UpstreamFailureError(
                "API description is neither JSON nor YAML", upstream="api-description"
            ) from exc
    if not isinstance(document, Mapping):
        raise UpstreamFailureError(
            "API description must be a JSON/YAML object", upstream="api-description"
        )
    return document


def fetch_api_description(
    spec_source: str,
    get_http_client: Callable[[], httpx.Client] | None = None,
    timeout_seconds: float = 30.0,
) -> ApiDocument:
    """Load the API description from an http(s) URL or a local file path."""
    if spec_source.startswith(("http://", "https://")):
        try:
            if get_http_client is not None:
                response = get_http_client().get(spec_source)
            else:
                response = httpx.get(spec_source, timeout=timeout_seconds)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamFailureError(
                "Failed to fetch API description",
                upstream="api-description",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(
                f"Failed to fetch API description: {exc}", upstream="api-description"
            ) from exc
        text = response.text
    else:
        try:
            text = Path(spec_source).read_text(encoding="utf-8")
        except OSError as exc:
            raise UpstreamFailureError(
                f"Failed to read API description: {exc}", upstream="api-description"
            ) from exc

    logger.info(
        "API description fetched",
        extra={"spec_source": spec_source, "document_length": len(text)},
    )
    return parse_api_description(text)


def _unescape_pointer_segment(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def resolve_ref(document: ApiDocument, node: Any, _seen: frozenset[str] = frozenset()) -> Any:
    """Follow ``$ref`` pointers in ``node`` against ``document`` until a concrete node."""
    if not isinstance(node, Mapping) or "$ref" not in node:
        return node

    pointer = node["$ref"]
    if not isinstance(pointer, str) or not pointer.startswith("#/"):
        raise SchemaLoadError(f"Only local references are supported: {pointer!r}")
    if pointer in _seen:
        raise SchemaLoadError(f"Circular reference: {pointer}")

    resolved: Any = document
    for segment in pointer[2:].split("/"):
        key = _unescape_pointer_segment(segment)
        if isinstance(resolved, Mapping) and key in resolved:
            resolved = resolved[key]
        elif isinstance(resolved, list) and key.isdigit() and int(key) < len(resolved):
            resolved = resolved[int(key)]
        else:
            raise SchemaLoadError(f"Dangling reference: {pointer}")

    return resolve_ref(document, resolved, _seen | {pointer})
