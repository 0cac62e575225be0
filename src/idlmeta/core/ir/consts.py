"""
Const declarations for idlmeta IR.

    const i32 MAX_RETRIES = 3
    const map<string, i32> LIMITS = {"a": 1} (scope = "global")
"""

from __future__ import annotations

from pydantic import Field

from .annotations import Annotations
from .base import Decl
from .fields import FieldType

# Consts bypass the field id allocator.
CONST_FIELD_ID = 0


class ConstType(Decl):
    """
    A const declaration.

    Attributes:
        name: Const identifier
        type: Type reference
        value: Value literal as normalised source text
        annotations: Const annotations
    """

    type: str
    value: str
    annotations: Annotations = Field(default_factory=Annotations)

    @property
    def field_id(self) -> int:
        return CONST_FIELD_ID

    def as_field(self) -> FieldType:
        """View this const as a field carrying the fixed const field id."""
        return FieldType(
            name=self.name,
            type=self.type,
            id=CONST_FIELD_ID,
            default=self.value,
            documentation=self.documentation,
            annotations=self.annotations,
        )
