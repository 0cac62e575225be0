"""
File-system loader for include references.

Searches a list of include directories for the referenced file, reads it
and parses it. The resolver calls `load` once per include reference.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from .errors import LoaderFailure
from .parser import parse_program
from .resolver_impl import LoadedProgram

logger = logging.getLogger(__name__)


class FileLoader:
    """
    Loads IDL files from disk.

    Args:
        include_dirs: Directories searched in order for relative references
        encoding: Source file encoding
    """

    def __init__(self, include_dirs: Sequence[Path | str] = (".",), encoding: str = "utf-8"):
        self.include_dirs = [Path(d) for d in include_dirs]
        self.encoding = encoding

    def find(self, reference: str) -> Path | None:
        """Return the first existing file for a reference, or None."""
        candidate = Path(reference)
        if candidate.is_absolute():
            return candidate if candidate.is_file() else None
        for directory in self.include_dirs:
            path = directory / candidate
            if path.is_file():
                return path
        return None

    def load(self, reference: str) -> LoadedProgram:
        """
        Read and parse the file a reference points to.

        Raises:
            LoaderFailure: If no include directory contains the file
            ParseError: If the file is not valid IDL
        """
        path = self.find(reference)
        if path is None:
            searched = ", ".join(str(d) for d in self.include_dirs)
            raise LoaderFailure(
                f"Include '{reference}' not found (searched: {searched})", reference=reference
            )

        logger.debug("Reading %s for '%s'", path, reference)
        text = path.read_text(encoding=self.encoding)
        return LoadedProgram(
            path=str(path.resolve()),
            program=parse_program(text, path),
            lines=tuple(text.splitlines()),
        )
