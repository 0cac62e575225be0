"""
Declaration union for idlmeta IR.

Every top-level statement of a program is one Declaration holding exactly
one of the five declaration kinds. In Python the union is a tagged variant:
a `kind` discriminant plus the entity itself. The wire form keeps one key
per kind, of which exactly one may be present:

    {"decl_message": {"name": "User", "variant": "struct", ...}}
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, model_serializer, model_validator

from ..errors import MalformedUnionError
from .consts import ConstType
from .enums import EnumType
from .fields import TypedefType
from .messages import MessageType
from .services import ServiceType


class DeclarationKind(str, Enum):
    """Discriminant of a Declaration; values are the wire keys."""

    ENUM = "decl_enum"
    TYPEDEF = "decl_typedef"
    MESSAGE = "decl_message"
    SERVICE = "decl_service"
    CONST = "decl_const"


DeclarationValue = Union[EnumType, TypedefType, MessageType, ServiceType, ConstType]

_KIND_TYPES: dict[DeclarationKind, type[BaseModel]] = {
    DeclarationKind.ENUM: EnumType,
    DeclarationKind.TYPEDEF: TypedefType,
    DeclarationKind.MESSAGE: MessageType,
    DeclarationKind.SERVICE: ServiceType,
    DeclarationKind.CONST: ConstType,
}

WIRE_KEYS = frozenset(kind.value for kind in DeclarationKind)


class Declaration(BaseModel):
    """
    One top-level declaration.

    Build with Declaration.of(entity) or Declaration.from_wire(mapping).
    Read the set variant with `variant`, which returns (kind, value).
    """

    kind: DeclarationKind
    value: DeclarationValue

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def decode_wire_form(cls, data: Any) -> Any:
        """Accept the one-key-per-kind wire form wherever a Declaration is validated."""
        if isinstance(data, Mapping) and "kind" not in data:
            return _split_wire(data)
        if isinstance(data, Mapping):
            kind = DeclarationKind(data["kind"])
            value = data.get("value")
            if isinstance(value, Mapping):
                value = _KIND_TYPES[kind].model_validate(value)
            return {"kind": kind, "value": value}
        return data

    @model_validator(mode="after")
    def check_kind_matches_value(self) -> Declaration:
        expected = _KIND_TYPES[self.kind]
        if type(self.value) is not expected:
            raise MalformedUnionError(
                f"Declaration tagged {self.kind.value} holds a {type(self.value).__name__}",
                names=[self.value.name],
            )
        return self

    @model_serializer(mode="plain")
    def serialize_wire_form(self) -> dict[str, Any]:
        return {self.kind.value: self.value}

    @classmethod
    def of(cls, value: DeclarationValue) -> Declaration:
        """Wrap a declaration entity, deriving the discriminant from its type."""
        for kind, entity_type in _KIND_TYPES.items():
            if type(value) is entity_type:
                return cls(kind=kind, value=value)
        raise MalformedUnionError(
            f"Cannot wrap {type(value).__name__} in a Declaration; "
            f"expected one of {', '.join(t.__name__ for t in _KIND_TYPES.values())}"
        )

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> Declaration:
        """
        Decode the wire form.

        Raises:
            MalformedUnionError: If zero or several decl_* keys are set
        """
        return cls.model_validate(_split_wire(data))

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @property
    def variant(self) -> tuple[DeclarationKind, DeclarationValue]:
        return self.kind, self.value

    @property
    def name(self) -> str:
        return self.value.name

    @property
    def enum(self) -> EnumType | None:
        return self.value if isinstance(self.value, EnumType) else None

    @property
    def typedef(self) -> TypedefType | None:
        return self.value if isinstance(self.value, TypedefType) else None

    @property
    def message(self) -> MessageType | None:
        return self.value if isinstance(self.value, MessageType) else None

    @property
    def service(self) -> ServiceType | None:
        return self.value if isinstance(self.value, ServiceType) else None

    @property
    def const(self) -> ConstType | None:
        return self.value if isinstance(self.value, ConstType) else None


def set_wire_keys(data: Mapping[str, Any]) -> list[str]:
    """Return the decl_* keys of a wire mapping that carry a value, in kind order."""
    return [kind.value for kind in DeclarationKind if data.get(kind.value) is not None]


def _split_wire(data: Mapping[str, Any]) -> dict[str, Any]:
    unknown = sorted(set(data) - WIRE_KEYS)
    if unknown:
        raise MalformedUnionError(f"Unknown declaration keys: {', '.join(unknown)}")

    present = set_wire_keys(data)
    if len(present) != 1:
        found = ", ".join(present) if present else "none"
        raise MalformedUnionError(
            f"Declaration must set exactly one of {', '.join(k.value for k in DeclarationKind)}; "
            f"found {found}",
            names=_wire_names(data, present),
        )

    kind = DeclarationKind(present[0])
    value = data[kind.value]
    if isinstance(value, Mapping):
        value = _KIND_TYPES[kind].model_validate(value)
    return {"kind": kind, "value": value}


def _wire_names(data: Mapping[str, Any], keys: list[str]) -> list[str]:
    names = []
    for key in keys:
        value = data[key]
        name = value.get("name") if isinstance(value, Mapping) else getattr(value, "name", None)
        if name:
            names.append(name)
    return names
