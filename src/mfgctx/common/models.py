"""Pydantic models for entities exchanged with the backend services.

Field names are snake_case in Python; the backends speak camelCase JSON
(``elementId``, ``typeId``, ``namespaceUri`` ...), so every model reads and
writes the wire aliases while still accepting the Python names.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, JsonValue


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Namespace(WireModel):
    uri: str
    name: str = ""
    description: str | None = None
    version: str | None = None


class AttributeDefinition(WireModel):
    name: str
    data_type: str | None = Field(None, alias="dataType")
    eng_unit: str | None = Field(None, alias="engUnit")
    description: str | None = None
    is_required: bool = Field(False, alias="isRequired")
    default_value: JsonValue = Field(None, alias="defaultValue")


class ObjectType(WireModel):
    element_id: str = Field(alias="elementId")
    name: str = ""
    namespace_uri: str | None = Field(None, alias="namespaceUri")
    description: str | None = None
    attributes: list[AttributeDefinition] = Field(default_factory=list)
    allowed_relationships: list[str] = Field(default_factory=list, alias="allowedRelationships")


class Entity(WireModel):
    """One manufacturing object as a backend service reported it.

    Entities are snapshots: each fetch yields a new value, and
    ``source_origin`` is only known once an adapter has tagged the result
    with the service that answered.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str = Field(alias="elementId")
    display_name: str = Field("", alias="name")
    type_id: str | None = Field(None, alias="typeId")
    namespace: str | None = Field(None, alias="namespaceUri")
    parent_id: str | None = Field(None, alias="parentId")
    has_children: bool = Field(False, alias="hasChildren")
    source_origin: str | None = Field(None, alias="sourceOrigin")
    attributes: dict[str, JsonValue] = Field(default_factory=dict)
    relationships: dict[str, list[str]] = Field(default_factory=dict)

    def with_origin(self, source: str) -> Entity:
        """Return a copy tagged with the service that produced it."""
        return self.model_copy(update={"source_origin": source})


class HistoricalValue(WireModel):
    element_id: str = Field(alias="elementId")
    timestamp: datetime
    values: dict[str, JsonValue] = Field(default_factory=dict)
    quality: str | None = None


class Relationship(WireModel):
    """A single ``subject --predicate--> object`` triple."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    subject_id: str = Field(alias="subjectId")
    predicate: str = Field(alias="predicateType")
    object_id: str = Field(alias="objectId")
