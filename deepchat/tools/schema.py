"""
Declarative JSON-Schema builder for tool parameters and structured output.

The orchestrator never looks inside a schema; it embeds whatever to_dict()
produced under tools[].function.parameters.

Example:
    >>> JsonSchema.object() \\
    ...     .property("location", JsonSchema.string("City name"), required=True) \\
    ...     .additional_properties(False) \\
    ...     .to_dict()
    {'type': 'object', 'properties': {'location': {'type': 'string', 'description': 'City name'}},
     'required': ['location'], 'additionalProperties': False}
"""

from __future__ import annotations

from typing import Any


class JsonSchema:
    """Mutable, fluent JSON-Schema node."""

    def __init__(self, type_: str | None):
        self._type = type_
        self._description: str | None = None
        self._properties: dict[str, JsonSchema] = {}
        self._required: list[str] = []
        self._items: JsonSchema | None = None
        self._enum: list[str] = []
        self._additional_properties: bool | None = None
        self._any_of: list[JsonSchema] = []

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def object(cls) -> JsonSchema:
        return cls("object")

    @classmethod
    def string(cls, description: str | None = None) -> JsonSchema:
        return cls("string").description(description)

    @classmethod
    def number(cls, description: str | None = None) -> JsonSchema:
        return cls("number").description(description)

    @classmethod
    def integer(cls, description: str | None = None) -> JsonSchema:
        return cls("integer").description(description)

    @classmethod
    def boolean(cls, description: str | None = None) -> JsonSchema:
        return cls("boolean").description(description)

    @classmethod
    def array(cls, items: JsonSchema) -> JsonSchema:
        return cls("array").items(items)

    @classmethod
    def enum(cls, description: str | None, *values: str) -> JsonSchema:
        return cls("string").description(description).enum_values(*values)

    @classmethod
    def any_of(cls, *variants: JsonSchema) -> JsonSchema:
        schema = cls(None)
        schema._any_of.extend(variants)
        return schema

    # ------------------------------------------------------------------
    # Fluent setters
    # ------------------------------------------------------------------

    def description(self, text: str | None) -> JsonSchema:
        self._description = text
        return self

    def property(self, name: str, schema: JsonSchema, required: bool = False) -> JsonSchema:
        if self._type != "object":
            raise ValueError(f"Cannot add property '{name}' to a schema of type {self._type!r}")
        self._properties[name] = schema
        if required and name not in self._required:
            self._required.append(name)
        return self

    def items(self, schema: JsonSchema) -> JsonSchema:
        if self._type != "array":
            raise ValueError(f"Cannot set items on a schema of type {self._type!r}")
        self._items = schema
        return self

    def enum_values(self, *values: str) -> JsonSchema:
        self._enum.extend(values)
        return self

    def additional_properties(self, allowed: bool) -> JsonSchema:
        self._additional_properties = allowed
        return self

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        if self._any_of:
            schema: dict[str, Any] = {"anyOf": [variant.to_dict() for variant in self._any_of]}
            if self._description:
                schema["description"] = self._description
            return schema

        schema = {"type": self._type}
        if self._description:
            schema["description"] = self._description
        if self._properties:
            schema["properties"] = {
                name: prop.to_dict() for name, prop in self._properties.items()
            }
        if self._required:
            schema["required"] = list(self._required)
        if self._items is not None:
            schema["items"] = self._items.to_dict()
        if self._enum:
            schema["enum"] = list(self._enum)
        if self._additional_properties is not None:
            schema["additionalProperties"] = self._additional_properties
        return schema
