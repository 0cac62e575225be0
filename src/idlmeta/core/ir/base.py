"""
Common base for named, documented idlmeta declarations.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Decl(BaseModel):
    """
    Capability shared by every named declaration.

    Attributes:
        name: Identifier, unique within its containing scope
        documentation: Doc comment captured by the parser, if any
    """

    name: str
    documentation: str | None = None

    model_config = ConfigDict(frozen=True)
