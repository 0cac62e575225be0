"""
Program-level IR types for idlmeta.

ProgramType is the parser output for a single IDL file. ProgramMeta adds
the verbatim source lines and the resolved include subgraph; ProgramMeta
instances are shared by program name across a resolved graph.
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .consts import ConstType
from .declarations import Declaration, DeclarationKind
from .enums import EnumType
from .fields import TypedefType
from .messages import MessageType
from .services import ServiceType


class ProgramType(BaseModel):
    """
    Complete IR for a single program (file).

    Attributes:
        program_name: Program name (the source file stem)
        documentation: Program-level doc comment, if any
        includes: Include name -> include reference, in source order
        namespaces: Language -> namespace identifier, sorted by language
        declarations: Top-level declarations in source order
    """

    program_name: str
    documentation: str | None = None
    includes: dict[str, str] = Field(default_factory=dict)
    namespaces: dict[str, str] = Field(default_factory=dict)
    declarations: list[Declaration] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("namespaces")
    @classmethod
    def sort_namespaces(cls, v: dict[str, str]) -> dict[str, str]:
        return dict(sorted(v.items()))

    def _of_kind(self, kind: DeclarationKind) -> list:
        return [d.value for d in self.declarations if d.kind == kind]

    @property
    def enums(self) -> list[EnumType]:
        return self._of_kind(DeclarationKind.ENUM)

    @property
    def typedefs(self) -> list[TypedefType]:
        return self._of_kind(DeclarationKind.TYPEDEF)

    @property
    def messages(self) -> list[MessageType]:
        return self._of_kind(DeclarationKind.MESSAGE)

    @property
    def services(self) -> list[ServiceType]:
        return self._of_kind(DeclarationKind.SERVICE)

    @property
    def consts(self) -> list[ConstType]:
        return self._of_kind(DeclarationKind.CONST)

    def get(self, name: str) -> Declaration | None:
        """Look up a top-level declaration by name."""
        for declaration in self.declarations:
            if declaration.name == name:
                return declaration
        return None


class ProgramMeta(BaseModel):
    """
    A program plus its source lines and resolved includes.

    Attributes:
        file_path: Resolved path the program was loaded from
        file_lines: Verbatim source lines
        program: Parsed program
        includes: Include name -> shared ProgramMeta of the included program
    """

    file_path: str
    file_lines: list[str] = Field(default_factory=list)
    program: ProgramType
    includes: dict[str, ProgramMeta] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def name(self) -> str:
        return self.program.program_name

    def walk(self) -> Iterator[ProgramMeta]:
        """Yield every distinct program in the graph once, dependencies first."""
        seen: set[int] = set()

        def visit(meta: ProgramMeta) -> Iterator[ProgramMeta]:
            if id(meta) in seen:
                return
            seen.add(id(meta))
            for child in meta.includes.values():
                yield from visit(child)
            yield meta

        yield from visit(self)

    def find(self, program_name: str) -> ProgramMeta | None:
        """Find a program anywhere in the graph by name."""
        for meta in self.walk():
            if meta.name == program_name:
                return meta
        return None

    @property
    def program_names(self) -> list[str]:
        return [meta.name for meta in self.walk()]


ProgramMeta.model_rebuild()
