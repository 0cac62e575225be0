"""
Enum types for idlmeta IR.

IDL Syntax:

    enum Status {
      ACTIVE = 1,
      // Suspended by an operator
      SUSPENDED (deprecated = "true"),
      CLOSED = 9
    }
"""

from __future__ import annotations

from pydantic import Field

from .annotations import Annotations
from .base import Decl


class EnumValue(Decl):
    """A single value within an enum, with an optional explicit id."""

    id: int | None = None
    annotations: Annotations = Field(default_factory=Annotations)


class EnumType(Decl):
    """
    An enum declaration.

    Attributes:
        name: Enum identifier (e.g. Status)
        values: Ordered list of enum values
        annotations: Annotations attached after the closing brace
    """

    values: list[EnumValue] = Field(default_factory=list)
    annotations: Annotations = Field(default_factory=Annotations)

    def value(self, name: str) -> EnumValue | None:
        for enum_value in self.values:
            if enum_value.name == name:
                return enum_value
        return None
