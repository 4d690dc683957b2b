"""Rendering parameter specs into the tool-schema dialects the providers accept.

Both dialects are derived from the same ``ParameterSpec`` tuple and the same
type table (``map_type``):

* ``typed``: ``google.genai.types.Schema`` objects, used by SDKs that expect a
  structured schema with enum-typed fields.
* ``json``: plain JSON-schema dicts, used by REST APIs and OpenAI-compatible
  tool declarations.
"""

from typing import Any

from google.genai import types

from nl_api.constants import FALLBACK_TYPE, TYPE_MAPPING, ToolDialect

from .models import OperationDescriptor, ParameterSpec


def map_type(declared: Any) -> str:
    return TYPE_MAPPING.get(str(declared or "").strip().lower(), FALLBACK_TYPE)


def _required_names(parameters: tuple[ParameterSpec, ...]) -> list[str]:
    return [param.name for param in parameters if param.required]


def _typed_property(param: ParameterSpec) -> types.Schema:
    items = None
    if param.item_type is not None:
        items = types.Schema(type=types.Type(param.item_type.upper()))
    return types.Schema(
        type=types.Type(param.type.upper()), description=param.description, items=items
    )


def _json_property(param: ParameterSpec) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": param.type, "description": param.description}
    if param.item_type is not None:
        schema["items"] = {"type": param.item_type}
    return schema


def render_typed_schema(parameters: tuple[ParameterSpec, ...]) -> types.Schema | None:
    # Function declarations without parameters must omit the schema entirely.
    if not parameters:
        return None
    required = _required_names(parameters)
    return types.Schema(
        type=types.Type.OBJECT,
        properties={param.name: _typed_property(param) for param in parameters},
        required=required or None,
    )


def render_json_schema(parameters: tuple[ParameterSpec, ...]) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {param.name: _json_property(param) for param in parameters},
    }
    required = _required_names(parameters)
    if required:
        schema["required"] = required
    return schema


def render_parameters(parameters: tuple[ParameterSpec, ...], dialect: ToolDialect) -> Any:
    if dialect == "typed":
        return render_typed_schema(parameters)
    if dialect == "json":
        return render_json_schema(parameters)
    raise ValueError(f"Unsupported tool dialect: {dialect}")


def json_function_declaration(
    operation: OperationDescriptor, parameters: dict[str, Any]
) -> dict[str, Any]:
    return {
        "name": operation.operation_id,
        "description": operation.description,
        "parameters": parameters,
    }


def openai_tool_declaration(
    operation: OperationDescriptor, parameters: dict[str, Any]
) -> dict[str, Any]:
    return {"type": "function", "function": json_function_declaration(operation, parameters)}


def typed_function_declaration(
    operation: OperationDescriptor, parameters: types.Schema | None
) -> types.FunctionDeclaration:
    return types.FunctionDeclaration(
        name=operation.operation_id,
        description=operation.description,
        parameters=parameters,
    )
