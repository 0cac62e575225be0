"""
Message types for idlmeta IR.

A message is the struct/union/exception/interface family of record-like
declarations:

    interface Named {
      string name
    }

    struct User implements Named {
      1: string name,
      2: optional i32 age
    } (table = "users")
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from .annotations import Annotations
from .base import Decl
from .fields import FieldType


class MessageVariant(str, Enum):
    """The closed set of message kinds."""

    STRUCT = "struct"
    UNION = "union"
    EXCEPTION = "exception"
    INTERFACE = "interface"


class MessageType(Decl):
    """
    A message declaration.

    Attributes:
        name: Message identifier
        variant: struct, union, exception or interface
        fields: Ordered field list
        implementing: Name of the interface this message implements, if any
        annotations: Annotations attached after the closing brace
    """

    variant: MessageVariant = MessageVariant.STRUCT
    fields: list[FieldType] = Field(default_factory=list)
    implementing: str | None = None
    annotations: Annotations = Field(default_factory=Annotations)

    @property
    def is_interface(self) -> bool:
        return self.variant == MessageVariant.INTERFACE

    def field(self, name: str) -> FieldType | None:
        for message_field in self.fields:
            if message_field.name == name:
                return message_field
        return None
