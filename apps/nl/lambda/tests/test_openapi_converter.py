import tempfile
import unittest
from pathlib import Path
from typing import Any

import httpx
from google.genai import types

from nl_api.errors import SchemaLoadError, UnknownOperationError, UpstreamFailureError
from nl_api.openapi.converter import (
    SchemaConverter,
    resolve_description,
    sanitize,
    synthesize_operation_id,
)
from nl_api.openapi.documents import fetch_api_description, parse_api_description, resolve_ref

ORDERS_API: dict[str, Any] = {
    "openapi": "3.0.1",
    "paths": {
        "/api/orders/{id}": {
            "parameters": [
                {"name": "id", "in": "path", "schema": {"type": "integer", "format": "int64"}}
            ],
            "get": {"operationId": "getOrder", "summary": "Get an order by id"},
            "put": {
                "operationId": "updateOrder",
                "description": "Update an order",
                "requestBody": {
                    "content": {
                        "application/json": {"schema": {"$ref": "#/components/schemas/Order"}}
                    }
                },
            },
            "delete": {"operationId": "deleteOrder"},
        },
        "/api/products": {
            "get": {
                "parameters": [
                    {
                        "name": "name",
                        "in": "query",
                        "description": "Product name",
                        "schema": {"type": "string"},
                    },
                    {
                        "name": "tags",
                        "in": "query",
                        "schema": {"type": "array", "items": {"type": "string"}},
                    },
                    {"name": "X-Trace-Id", "in": "header", "schema": {"type": "string"}},
                ]
            },
            "post": {
                "operationId": "createProduct",
                "summary": "Create a product",
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {
                                "type": "object",
                                "required": ["name"],
                                "properties": {
                                    "name": {"type": "string"},
                                    "price": {"type": "number", "format": "double"},
                                    "inStock": {"type": "boolean"},
                                },
                            }
                        }
                    }
                },
            },
        },
        "/api/ping": {"get": {"operationId": "ping", "summary": "Liveness probe"}},
        "/api/broken": {
            "get": {
                "operationId": "broken",
                "parameters": [{"$ref": "#/components/parameters/Missing"}],
            }
        },
    },
    "components": {
        "schemas": {
            "Order": {
                "type": "object",
                "required": ["status"],
                "properties": {
                    "id": {"type": "integer"},
                    "status": {"type": "string", "description": "Order status"},
                    "quantity": {"type": "integer", "format": "int32"},
                },
            }
        }
    },
}


def converter_for(*documents: dict[str, Any]) -> SchemaConverter:
    remaining = list(documents)
    return SchemaConverter(fetch_document=lambda _source: remaining.pop(0))


class OperationIdTests(unittest.TestCase):
    def test_synthesized_id_replaces_invalid_characters(self) -> None:
        self.assertEqual(synthesize_operation_id("get", "/api/products"), "GET_api_products")
        self.assertEqual(
            synthesize_operation_id("delete", "/api/orders/{id}"), "DELETE_api_orders_id_"
        )

    def test_synthesis_is_pure_and_idempotent(self) -> None:
        for path in ["/api/products", "/a-b/{c.d}/e", "//x//y"]:
            with self.subTest(path=path):
                first = synthesize_operation_id("patch", path)
                self.assertEqual(first, synthesize_operation_id("patch", path))
                self.assertEqual(sanitize(first), first)

    def test_description_falls_back_to_method_and_path(self) -> None:
        operation = {"summary": "  ", "description": "D"}
        self.assertEqual(resolve_description("get", "/x", operation), "D")
        self.assertEqual(resolve_description("post", "/x", {}), "POST /x")


class SchemaConverterTests(unittest.TestCase):
    def test_load_then_lookup_recovers_method_and_path(self) -> None:
        converter = converter_for(ORDERS_API)
        loaded = converter.load("http://api/v3/api-docs", "json")

        ids = [operation.operation_id for operation in loaded.operations]
        self.assertEqual(
            ids,
            ["getOrder", "updateOrder", "deleteOrder", "GET_api_products", "createProduct", "ping"],
        )

        get_order = converter.lookup("getOrder")
        self.assertEqual(get_order.http_method, "GET")
        self.assertEqual(get_order.path_template, "/api/orders/{id}")
        self.assertEqual(get_order.description, "Get an order by id")

        products = converter.lookup("GET_api_products")
        self.assertEqual(products.http_method, "GET")
        self.assertEqual(products.path_template, "/api/products")
        self.assertEqual(products.description, "GET /api/products")

    def test_failing_operation_is_skipped_and_others_load(self) -> None:
        converter = converter_for(ORDERS_API)
        loaded = converter.load("spec", "json")

        self.assertEqual(loaded.skipped, ("GET /api/broken",))
        with self.assertRaises(UnknownOperationError):
            converter.lookup("broken")

    def test_path_parameters_are_required_and_headers_ignored(self) -> None:
        converter = converter_for(ORDERS_API)
        converter.load("spec", "json")

        (order_id,) = converter.lookup("getOrder").parameters
        self.assertEqual(order_id.name, "id")
        self.assertEqual(order_id.type, "integer")
        self.assertEqual(order_id.source, "path")
        self.assertTrue(order_id.required)

        products = converter.lookup("GET_api_products").parameters
        self.assertEqual([param.name for param in products], ["name", "tags"])
        self.assertEqual(products[0].description, "Product name")
        self.assertFalse(products[0].required)
        self.assertEqual(products[1].type, "array")
        self.assertEqual(products[1].item_type, "string")

    def test_body_fields_follow_parameters_and_lose_name_collisions(self) -> None:
        converter = converter_for(ORDERS_API)
        converter.load("spec", "json")

        params = {param.name: param for param in converter.lookup("updateOrder").parameters}
        self.assertEqual(list(params), ["id", "status", "quantity"])
        self.assertEqual(params["id"].source, "path")
        self.assertEqual(params["status"].source, "body")
        self.assertTrue(params["status"].required)
        self.assertEqual(params["status"].description, "Order status")
        self.assertEqual(params["quantity"].type, "integer")
        self.assertFalse(params["quantity"].required)

        create = {param.name: param for param in converter.lookup("createProduct").parameters}
        self.assertEqual(create["price"].type, "number")
        self.assertEqual(create["inStock"].type, "boolean")

    def test_json_dialect_renders_plain_schema(self) -> None:
        converter = converter_for(ORDERS_API)
        loaded = converter.load("spec", "json")

        self.assertEqual(
            loaded.tool_for("getOrder"),
            {
                "type": "object",
                "properties": {"id": {"type": "integer", "description": ""}},
                "required": ["id"],
            },
        )
        self.assertEqual(loaded.tool_for("ping"), {"type": "object", "properties": {}})

    def test_typed_dialect_renders_genai_schema(self) -> None:
        converter = converter_for(ORDERS_API)
        loaded = converter.load("spec", "typed")

        schema = loaded.tool_for("createProduct")
        self.assertIsInstance(schema, types.Schema)
        self.assertEqual(schema.type, types.Type.OBJECT)
        self.assertEqual(schema.required, ["name"])
        self.assertEqual(schema.properties["price"].type, types.Type.NUMBER)
        tags = loaded.tool_for("GET_api_products").properties["tags"]
        self.assertEqual(tags.items.type, types.Type.STRING)
        self.assertIsNone(loaded.tool_for("ping"))

    def test_reload_swaps_registry_wholesale(self) -> None:
        smaller = {"openapi": "3.0.1", "paths": {"/api/ping": ORDERS_API["paths"]["/api/ping"]}}
        converter = converter_for(ORDERS_API, smaller)
        converter.load("spec", "json")
        self.assertEqual(len(converter.operations()), 6)

        converter.load("spec", "json")

        self.assertEqual([op.operation_id for op in converter.operations()], ["ping"])
        with self.assertRaises(UnknownOperationError):
            converter.lookup("getOrder")

    def test_dangling_request_body_reference_skips_only_that_operation(self) -> None:
        document = {
            "paths": {
                "/api/orders": {
                    "get": {"operationId": "listOrders"},
                    "post": {
                        "operationId": "createOrder",
                        "requestBody": {
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/Missing"}
                                }
                            }
                        },
                    },
                }
            }
        }
        converter = converter_for(document)
        loaded = converter.load("spec", "json")

        self.assertEqual(loaded.skipped, ("POST /api/orders",))
        self.assertEqual([op.operation_id for op in loaded.operations], ["listOrders"])
        self.assertNotIn("createOrder", loaded.tools)

    def test_duplicate_operation_id_keeps_first(self) -> None:
        document = {
            "paths": {
                "/a": {"get": {"operationId": "same"}},
                "/b": {"get": {"operationId": "same"}},
            }
        }
        converter = converter_for(document)
        loaded = converter.load("spec", "json")

        self.assertEqual(converter.lookup("same").path_template, "/a")
        self.assertEqual(loaded.skipped, ("GET /b",))

    def test_swagger2_parameters_read_type_from_parameter(self) -> None:
        document = {
            "swagger": "2.0",
            "paths": {
                "/pets/{petId}": {
                    "get": {
                        "operationId": "getPet",
                        "parameters": [
                            {"name": "petId", "in": "path", "type": "integer", "required": True},
                            {"name": "verbose", "in": "query", "type": "boolean"},
                        ],
                    }
                }
            },
        }
        converter = converter_for(document)
        converter.load("spec", "json")

        pet_id, verbose = converter.lookup("getPet").parameters
        self.assertEqual((pet_id.type, pet_id.source), ("integer", "path"))
        self.assertEqual((verbose.type, verbose.source), ("boolean", "query"))

    def test_lookup_before_load_raises_unknown_operation(self) -> None:
        with self.assertRaises(UnknownOperationError) as ctx:
            SchemaConverter().lookup("getOrder")
        self.assertEqual(ctx.exception.operation_id, "getOrder")


class ApiDocumentTests(unittest.TestCase):
    def test_parse_accepts_json_and_yaml(self) -> None:
        self.assertEqual(parse_api_description('{"paths": {}}'), {"paths": {}})
        self.assertEqual(
            parse_api_description("openapi: 3.0.0\npaths: {}\n"),
            {"openapi": "3.0.0", "paths": {}},
        )

    def test_parse_rejects_non_object_document(self) -> None:
        with self.assertRaises(UpstreamFailureError):
            parse_api_description("- just\n- a list\n")

    def test_fetch_reads_local_file(self) -> None:
        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / "openapi.yaml"
            path.write_text("paths:\n  /ping:\n    get: {}\n", encoding="utf-8")

            document = fetch_api_description(str(path))

        self.assertIn("/ping", document["paths"])

    def test_fetch_maps_http_errors_to_upstream_failure(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500)))

        with self.assertRaises(UpstreamFailureError) as ctx:
            fetch_api_description("http://api/v3/api-docs", get_http_client=lambda: client)

        self.assertEqual(ctx.exception.upstream, "api-description")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_fetch_over_http_uses_given_client(self) -> None:
        client = httpx.Client(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"paths": {"/x": {}}})
            )
        )

        document = fetch_api_description("http://api/v3/api-docs", get_http_client=lambda: client)

        self.assertEqual(document, {"paths": {"/x": {}}})

    def test_resolve_ref_follows_chains_and_detects_cycles(self) -> None:
        document = {
            "components": {
                "schemas": {
                    "A": {"$ref": "#/components/schemas/B"},
                    "B": {"type": "string"},
                }
            },
            "loop": {"$ref": "#/loop"},
        }

        self.assertEqual(
            resolve_ref(document, {"$ref": "#/components/schemas/A"}), {"type": "string"}
        )
        with self.assertRaises(SchemaLoadError):
            resolve_ref(document, {"$ref": "#/loop"})
        with self.assertRaises(SchemaLoadError):
            resolve_ref(document, {"$ref": "#/components/schemas/Missing"})
        with self.assertRaises(SchemaLoadError):
            resolve_ref(document, {"$ref": "other.yaml#/A"})


if __name__ == "__main__":
    unittest.main()
