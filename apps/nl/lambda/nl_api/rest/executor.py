"""Execution of model-selected operations against the REST backend."""

import json
import logging
import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from nl_api.constants import (
    BODY_HTTP_METHODS,
    DELETED_ACKNOWLEDGEMENT,
    JSON_CONTENT_TYPE,
    MAX_UPSTREAM_DETAIL_LENGTH,
    SUPPORTED_HTTP_METHODS,
    UPDATED_ACKNOWLEDGEMENT,
)
from nl_api.errors import (
    MissingPathParameterError,
    UnsupportedMethodError,
    UpstreamFailureError,
)
from nl_api.openapi.models import OperationDescriptor

logger = logging.getLogger(__name__)

_ACKNOWLEDGEMENTS = {"PUT": UPDATED_ACKNOWLEDGEMENT, "DELETE": DELETED_ACKNOWLEDGEMENT}
_PLACEHOLDER = re.compile(r"\{([^{}/]+)\}")


def stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def build_url(base_url: str, path_template: str, arguments: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders and append every other argument as a query parameter.

    Raises ``MissingPathParameterError`` when a placeholder has no argument.
    """
    url_path = path_template
    query: list[tuple[str, str]] = []
    for key, value in arguments.items():
        if value is None:
            continue
        placeholder = "{" + key + "}"
        if placeholder in url_path:
            url_path = url_path.replace(placeholder, quote(stringify(value), safe=""))
        else:
            query.append((key, stringify(value)))

    unresolved = _PLACEHOLDER.findall(url_path)
    if unresolved:
        raise MissingPathParameterError(path_template, unresolved)

    url = base_url.rstrip("/") + url_path
    if query:
        url += "?" + urlencode(query)
    return url


@dataclass(frozen=True)
class RestRequest:
    method: str
    url: str
    body: dict[str, Any] | None = None


class RestExecutor:
    def __init__(self, base_url: str, get_http_client: Callable[[], httpx.Client]) -> None:
        self._base_url = base_url
        self._get_http_client = get_http_client

    def prepare(self, operation: OperationDescriptor, arguments: Mapping[str, Any]) -> RestRequest:
        method = operation.http_method.upper()
        if method not in SUPPORTED_HTTP_METHODS:
            raise UnsupportedMethodError(method, operation.operation_id)

        present = {key: value for key, value in arguments.items() if value is not None}
        if method not in BODY_HTTP_METHODS:
            url = build_url(self._base_url, operation.path_template, present)
            return RestRequest(method=method, url=url)

        # Write verbs keep path placeholders and declared query parameters in the URL;
        # everything else is sent in the JSON body.
        query_names = operation.parameter_names("query")
        url_arguments: dict[str, Any] = {}
        body: dict[str, Any] = {}
        for key, value in present.items():
            if "{" + key + "}" in operation.path_template or key in query_names:
                url_arguments[key] = value
            else:
                body[key] = value
        return RestRequest(
            method=method,
            url=build_url(self._base_url, operation.path_template, url_arguments),
            body=body,
        )

    def execute(self, operation: OperationDescriptor, arguments: Mapping[str, Any]) -> str:
        request = self.prepare(operation, arguments)
        logger.info(
            "Executing REST call",
            extra={
                "operation_id": operation.operation_id,
                "http_method": request.method,
                "url": request.url,
            },
        )

        headers: dict[str, str] = {"Accept": JSON_CONTENT_TYPE}
        content: bytes | None = None
        if request.body is not None:
            try:
                content = json.dumps(request.body).encode("utf-8")
            except (TypeError, ValueError) as exc:
                raise UpstreamFailureError(
                    "Could not encode request body", upstream="rest", detail=str(exc)
                ) from exc
            headers["Content-Type"] = JSON_CONTENT_TYPE

        start = time.time()
        try:
            response = self._get_http_client().request(
                request.method, request.url, content=content, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamFailureError(
                f"{request.method} {request.url} failed",
                upstream="rest",
                status_code=exc.response.status_code,
                detail=exc.response.text[:MAX_UPSTREAM_DETAIL_LENGTH] or None,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailureError(
                f"{request.method} {request.url} failed", upstream="rest", detail=str(exc)
            ) from exc
        duration_ms = int((time.time() - start) * 1000)

        result = response.text
        if request.method in _ACKNOWLEDGEMENTS and not result.strip():
            result = _ACKNOWLEDGEMENTS[request.method]

        logger.info(
            "REST call completed",
            extra={
                "operation_id": operation.operation_id,
                "status_code": response.status_code,
                "rest_duration_ms": duration_ms,
                "response_length": len(result),
            },
        )
        return result
