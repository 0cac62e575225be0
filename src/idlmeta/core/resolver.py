import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol, runtime_checkable

from . import ir
from .errors import LoaderFailure
from .resolver_impl import IncludeResolver, LoadedProgram, LoadFn

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


@runtime_checkable
class Loader(Protocol):
    """
    Capability that turns an include reference into a parsed program.

    `load` receives the reference exactly as written in the includer's
    `includes` map and returns the resolved path, the parsed program and the
    verbatim source lines. Failures are raised; they are not retried.
    """

    def load(self, reference: str) -> LoadedProgram: ...


def _load_fn(loader: Loader | LoadFn) -> LoadFn:
    if isinstance(loader, Loader):
        return loader.load
    return loader


def resolve(
    root: ir.ProgramType,
    loader: Loader | LoadFn,
    *,
    path: str = "",
    lines: Sequence[str] = (),
    reference: str | None = None,
    max_workers: int | None = None,
) -> ir.ProgramMeta:
    """
    Resolve a program and everything it transitively includes.

    Performs:
    1. Concurrent loading of every reachable include (one load per
       program name and reference)
    2. Conflict detection when one program name is reached through
       different references
    3. Cycle detection
    4. Assembly of a graph in which each program name has exactly one
       ProgramMeta, shared by reference between includers

    Args:
        root: The root program
        loader: Loader object or `load(reference)` callable
        path: Path of the root program
        lines: Verbatim source lines of the root program
        reference: Include reference other programs use for the root
            (defaults to path)
        max_workers: Size of the loading thread pool

    Returns:
        The root ProgramMeta

    Raises:
        LoaderFailure: If an include cannot be loaded
        CircularIncludeError: If the include relation has a cycle
        DuplicateProgramNameConflictError: If two references claim one
            program name with different content
        ProgramNameMismatchError: If an include key differs from the loaded
            program's name
    """
    workers = max_workers or DEFAULT_MAX_WORKERS
    logger.info("Resolving includes of '%s' with %d worker(s)", root.program_name, workers)

    loaded = LoadedProgram(path=path, program=root, lines=tuple(lines))
    root_reference = path if reference is None else reference
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="idlmeta-load") as executor:
        meta = IncludeResolver(_load_fn(loader), executor).resolve(loaded, root_reference)

    logger.info(
        "Resolved '%s': %d program(s) in graph", root.program_name, len(meta.program_names)
    )
    return meta


def resolve_file(
    reference: str,
    loader: Loader | LoadFn,
    *,
    max_workers: int | None = None,
) -> ir.ProgramMeta:
    """
    Load the root program through the loader, then resolve it.

    Args:
        reference: Root reference passed to the loader
        loader: Loader object or `load(reference)` callable
        max_workers: Size of the loading thread pool

    Returns:
        The root ProgramMeta
    """
    load = _load_fn(loader)
    try:
        loaded = load(reference)
    except LoaderFailure:
        raise
    except Exception as e:
        raise LoaderFailure(f"Cannot load '{reference}': {e}", reference=reference) from e

    return resolve(
        loaded.program,
        load,
        path=loaded.path,
        lines=loaded.lines,
        reference=reference,
        max_workers=max_workers,
    )
