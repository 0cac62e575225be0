"""
Field and typedef definitions for idlmeta IR.

Fields appear in messages (struct, union, exception, interface) and in
function parameter and exception lists:

    1: required string name = "anonymous" (max_length = "64"),
    optional list<i32> scores

A field keeps both the identifier written in source (declared_id) and the
identifier it ends up with (id). Fields without a declared id receive one
from the field id allocator.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from .annotations import Annotations
from .base import Decl


class Requirement(str, Enum):
    """Requiredness of a field."""

    DEFAULT = "default"
    OPTIONAL = "optional"
    REQUIRED = "required"


class FieldType(Decl):
    """
    Specification for a single field.

    Attributes:
        name: Field identifier
        type: Type reference as written (e.g. "map<string, i64>")
        id: Assigned field identifier (None until allocated)
        declared_id: Identifier written in source, if any
        requirement: default, optional or required
        default: Default value literal, if any
        annotations: Field annotations
    """

    type: str
    id: int | None = None
    declared_id: int | None = None
    requirement: Requirement = Requirement.DEFAULT
    default: str | None = None
    annotations: Annotations = Field(default_factory=Annotations)

    @property
    def is_required(self) -> bool:
        return self.requirement == Requirement.REQUIRED

    @property
    def is_optional(self) -> bool:
        return self.requirement == Requirement.OPTIONAL

    @property
    def has_explicit_id(self) -> bool:
        return self.declared_id is not None


class TypedefType(Decl):
    """A typedef declaration: `typedef <type> <name>`."""

    type: str
