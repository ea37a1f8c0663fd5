"""
Unit tests for the JsonSchema builder.
"""

import pytest

from deepchat.tools.schema import JsonSchema


class TestJsonSchema:

    def test_scalars(self):
        assert JsonSchema.string("City").to_dict() == {"type": "string", "description": "City"}
        assert JsonSchema.number().to_dict() == {"type": "number"}
        assert JsonSchema.integer("Days").to_dict() == {"type": "integer", "description": "Days"}
        assert JsonSchema.boolean().to_dict() == {"type": "boolean"}

    def test_nested_object(self):
        schema = (
            JsonSchema.object()
            .property("query", JsonSchema.string("Search text"), required=True)
            .property(
                "filters",
                JsonSchema.object()
                .property("tags", JsonSchema.array(JsonSchema.string()))
                .additional_properties(False),
            )
        )

        assert schema.to_dict() == {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search text"},
                "filters": {
                    "type": "object",
                    "properties": {"tags": {"type": "array", "items": {"type": "string"}}},
                    "additionalProperties": False,
                },
            },
            "required": ["query"],
        }

    def test_required_listed_once(self):
        schema = (
            JsonSchema.object()
            .property("a", JsonSchema.string(), required=True)
            .property("a", JsonSchema.integer(), required=True)
        )
        assert schema.to_dict()["required"] == ["a"]
        assert schema.to_dict()["properties"]["a"] == {"type": "integer"}

    def test_any_of(self):
        schema = JsonSchema.any_of(JsonSchema.string(), JsonSchema.integer()).description("Id")
        assert schema.to_dict() == {
            "anyOf": [{"type": "string"}, {"type": "integer"}],
            "description": "Id",
        }

    def test_property_on_non_object_rejected(self):
        with pytest.raises(ValueError, match="property"):
            JsonSchema.string().property("x", JsonSchema.string())

    def test_items_on_non_array_rejected(self):
        with pytest.raises(ValueError, match="items"):
            JsonSchema.object().items(JsonSchema.string())
