"""
Service and function types for idlmeta IR.

IDL Syntax:

    service UserService extends BaseService {
      User get(1: i64 id) throws (1: NotFound missing),
      oneway void ping()
    } (version = "2")
"""

from __future__ import annotations

from pydantic import Field

from .annotations import Annotations
from .base import Decl
from .fields import FieldType


class FunctionType(Decl):
    """
    A service function.

    Attributes:
        name: Function identifier
        one_way: True for fire-and-forget functions
        return_type: Return type reference (None for void)
        params: Ordered parameter list
        exceptions: Ordered list of declared exceptions
        annotations: Function annotations
    """

    one_way: bool = False
    return_type: str | None = None
    params: list[FieldType] = Field(default_factory=list)
    exceptions: list[FieldType] = Field(default_factory=list)
    annotations: Annotations = Field(default_factory=Annotations)


class ServiceType(Decl):
    """
    A service declaration.

    Attributes:
        name: Service identifier
        extend: Name of the base service, if any
        functions: Ordered function list
        annotations: Service annotations
    """

    extend: str | None = None
    functions: list[FunctionType] = Field(default_factory=list)
    annotations: Annotations = Field(default_factory=Annotations)

    def function(self, name: str) -> FunctionType | None:
        for function in self.functions:
            if function.name == name:
                return function
        return None
