"""
idlmeta Intermediate Representation (IR) types.

This package contains the reflective meta-model of an IDL program.
Types are organized into logical submodules and re-exported here.
"""

from .annotations import Annotations
from .base import Decl
from .consts import CONST_FIELD_ID, ConstType
from .declarations import Declaration, DeclarationKind, DeclarationValue
from .enums import EnumType, EnumValue
from .fields import FieldType, Requirement, TypedefType
from .messages import MessageType, MessageVariant
from .program import ProgramMeta, ProgramType
from .services import FunctionType, ServiceType

__all__ = [
    "Annotations",
    "CONST_FIELD_ID",
    "ConstType",
    "Decl",
    "Declaration",
    "DeclarationKind",
    "DeclarationValue",
    "EnumType",
    "EnumValue",
    "FieldType",
    "FunctionType",
    "MessageType",
    "MessageVariant",
    "ProgramMeta",
    "ProgramType",
    "Requirement",
    "ServiceType",
    "TypedefType",
]
