# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and document mapping.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class BaseEntity(BaseModel):
    """Base entity with common fields for all domain objects.

    Attributes are snake_case in Python and camelCase in stored documents.
    """

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Stored documents use camelCase keys
        alias_generator=to_camel,
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Validate assignment
        validate_assignment=True,
        arbitrary_types_allowed=True
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last update timestamp")

    def to_document(self) -> Dict[str, Any]:
        """Serialize to a MongoDB document (camelCase keys, ObjectId _id)."""
        document = self.model_dump(by_alias=True, exclude={"id"})
        document["_id"] = ObjectId(self.id)
        return document

    @classmethod
    def from_document(cls, document: Optional[Dict[str, Any]]):
        """Build an entity from a stored document, or None."""
        if document is None:
            return None
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def to_public(self, exclude: Optional[set] = None) -> Dict[str, Any]:
        """JSON-ready representation with snake_case keys."""
        return self.model_dump(mode="json", exclude=exclude)


def as_naive_utc(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC, the form MongoDB returns."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
