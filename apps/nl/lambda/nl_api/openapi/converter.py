"""OpenAPI → tool registry conversion.

``SchemaConverter.load`` walks every path/method pair of an API description,
derives an ``OperationDescriptor`` with its ``ParameterSpec`` list, renders the
parameters into the requested tool dialect and swaps the whole registry in at
once. Operations that fail to parse are logged and skipped; the rest load.
"""

import logging
import re
import threading
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from nl_api.constants import OPENAPI_METHODS, ParameterSource, ToolDialect
from nl_api.errors import SchemaLoadError, UnknownOperationError

from .documents import ApiDocument, fetch_api_description, resolve_ref
from .models import LoadedTools, OperationDescriptor, ParameterSpec
from .tool_schemas import map_type, render_parameters

logger = logging.getLogger(__name__)

_INVALID_ID_CHARS = re.compile(r"[^a-zA-Z0-9_]")
_REPEATED_UNDERSCORES = re.compile(r"_+")
_PLACEABLE_LOCATIONS = ("path", "query")


def sanitize(value: str) -> str:
    return _REPEATED_UNDERSCORES.sub("_", _INVALID_ID_CHARS.sub("_", value))


def synthesize_operation_id(http_method: str, path: str) -> str:
    return sanitize(f"{http_method.upper()}_{path}")


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def resolve_operation_id(http_method: str, path: str, operation: Mapping[str, Any]) -> str:
    return _text(operation.get("operationId")) or synthesize_operation_id(http_method, path)


def resolve_description(http_method: str, path: str, operation: Mapping[str, Any]) -> str:
    return (
        _text(operation.get("summary"))
        or _text(operation.get("description"))
        or f"{http_method.upper()} {path}"
    )


def _declared_type(schema: Mapping[str, Any]) -> Any:
    return schema.get("type") or schema.get("format")


def _item_type(document: ApiDocument, schema: Mapping[str, Any], mapped_type: str) -> str | None:
    if mapped_type != "ARRAY":
        return None
    items = resolve_ref(document, schema.get("items") or {})
    return map_type(_declared_type(items) if isinstance(items, Mapping) else None).lower()


def _parameter_spec(
    document: ApiDocument,
    name: str,
    schema: Mapping[str, Any],
    description: str,
    required: bool,
    source: ParameterSource,
) -> ParameterSpec:
    mapped = map_type(_declared_type(schema))
    return ParameterSpec(
        name=name,
        type=mapped.lower(),
        description=description,
        required=required,
        source=source,
        item_type=_item_type(document, schema, mapped),
    )


def _merged_parameters(
    document: ApiDocument, path_item: Mapping[str, Any], operation: Mapping[str, Any]
) -> list[Mapping[str, Any]]:
    """Path-item parameters overridden by operation parameters with the same (in, name)."""
    merged: dict[tuple[str, str], Mapping[str, Any]] = {}
    for raw in [*(path_item.get("parameters") or []), *(operation.get("parameters") or [])]:
        param = resolve_ref(document, raw)
        if not isinstance(param, Mapping) or not {"in", "name"} <= param.keys():
            raise SchemaLoadError(f"Invalid parameter object: {raw!r}")
        merged[(param["in"], param["name"])] = param
    return list(merged.values())


def _request_body_schema(
    document: ApiDocument, operation: Mapping[str, Any]
) -> Mapping[str, Any] | None:
    request_body = resolve_ref(document, operation.get("requestBody"))
    if not isinstance(request_body, Mapping):
        return None
    media = (request_body.get("content") or {}).get("application/json") or {}
    if "schema" not in media:
        return None
    schema = resolve_ref(document, media["schema"])
    return schema if isinstance(schema, Mapping) else None


def extract_parameters(
    document: ApiDocument, path_item: Mapping[str, Any], operation: Mapping[str, Any]
) -> tuple[ParameterSpec, ...]:
    """Collect path/query parameters and request-body fields into one flat namespace.

    Path and query parameters are collected first; a body field whose name is
    already taken is dropped (first writer wins).
    """
    specs: dict[str, ParameterSpec] = {}

    for param in _merged_parameters(document, path_item, operation):
        location = param["in"]
        if location not in _PLACEABLE_LOCATIONS:
            continue
        name = str(param["name"])
        schema = resolve_ref(document, param.get("schema") or {})
        # Swagger 2 documents put the type directly on the parameter.
        if not isinstance(schema, Mapping) or not _declared_type(schema):
            schema = param
        specs.setdefault(
            name,
            _parameter_spec(
                document,
                name,
                schema,
                _text(param.get("description")),
                bool(param.get("required")) or location == "path",
                location,
            ),
        )

    body_schema = _request_body_schema(document, operation)
    if body_schema is not None:
        required_fields = {str(field) for field in body_schema.get("required") or []}
        for name, raw_property in (body_schema.get("properties") or {}).items():
            if name in specs:
                logger.debug(
                    "Body field shadowed by parameter",
                    extra={"parameter_name": name},
                )
                continue
            prop = resolve_ref(document, raw_property)
            if not isinstance(prop, Mapping):
                raise SchemaLoadError(f"Invalid schema for body field {name!r}")
            specs[name] = _parameter_spec(
                document,
                name,
                prop,
                _text(prop.get("description")),
                name in required_fields,
                "body",
            )

    return tuple(specs.values())


def parse_operation(
    document: ApiDocument,
    http_method: str,
    path: str,
    path_item: Mapping[str, Any],
    operation: Mapping[str, Any],
) -> OperationDescriptor:
    if not isinstance(operation, Mapping):
        raise SchemaLoadError("Operation node must be an object")
    return OperationDescriptor(
        operation_id=resolve_operation_id(http_method, path, operation),
        http_method=http_method.upper(),
        path_template=path,
        description=resolve_description(http_method, path, operation),
        parameters=extract_parameters(document, path_item, operation),
    )


class SchemaConverter:
    """Registry of REST operations derived from an API description."""

    def __init__(
        self, fetch_document: Callable[[str], ApiDocument] = fetch_api_description
    ) -> None:
        self._fetch_document = fetch_document
        self._registry: Mapping[str, OperationDescriptor] = MappingProxyType({})
        self._load_lock = threading.Lock()

    def load(self, spec_source: str, dialect: ToolDialect) -> LoadedTools:
        document = self._fetch_document(spec_source)

        operations: dict[str, OperationDescriptor] = {}
        tools: dict[str, Any] = {}
        skipped: list[str] = []

        with self._load_lock:
            for path, raw_path_item in (document.get("paths") or {}).items():
                try:
                    path_item = resolve_ref(document, raw_path_item)
                except SchemaLoadError as exc:
                    path_item = None
                    logger.warning(
                        "Skipped path that failed to load",
                        extra={"path": path, "error": str(exc)},
                    )
                if not isinstance(path_item, Mapping):
                    skipped.append(str(path))
                    continue

                for method, operation in path_item.items():
                    if str(method).lower() not in OPENAPI_METHODS:
                        continue
                    label = f"{str(method).upper()} {path}"
                    try:
                        descriptor = parse_operation(document, method, path, path_item, operation)
                        if descriptor.operation_id in operations:
                            raise SchemaLoadError(
                                f"Duplicate operationId: {descriptor.operation_id}"
                            )
                        tool = render_parameters(descriptor.parameters, dialect)
                    except Exception as exc:
                        logger.warning(
                            "Skipped operation that failed to load",
                            extra={"operation": label, "error": str(exc)},
                        )
                        skipped.append(label)
                        continue

                    operations[descriptor.operation_id] = descriptor
                    tools[descriptor.operation_id] = tool
                    logger.info(
                        "Operation registered",
                        extra={
                            "operation_id": descriptor.operation_id,
                            "operation": label,
                            "dialect": dialect,
                        },
                    )

            self._registry = MappingProxyType(operations)

        logger.info(
            "Operation registry loaded",
            extra={
                "operation_count": len(operations),
                "skipped_count": len(skipped),
                "spec_source": spec_source,
            },
        )
        return LoadedTools(
            operations=tuple(operations.values()),
            tools=MappingProxyType(tools),
            skipped=tuple(skipped),
        )

    def lookup(self, operation_id: str) -> OperationDescriptor:
        registry = self._registry
        descriptor = registry.get(operation_id)
        if descriptor is None:
            raise UnknownOperationError(operation_id)
        return descriptor

    def operations(self) -> tuple[OperationDescriptor, ...]:
        return tuple(self._registry.values())
