"""
Include resolver implementation for idlmeta.

Handles concurrent loading, per-name memoisation, conflict detection and
cycle-checked assembly of the ProgramMeta graph.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Executor, Future, wait
from dataclasses import dataclass, field

from . import ir
from .errors import (
    CircularIncludeError,
    DuplicateProgramNameConflictError,
    LoaderFailure,
    ProgramNameMismatchError,
    ResolutionError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedProgram:
    """
    What a loader returns for one include reference.

    Attributes:
        path: Resolved path of the loaded file
        program: Parsed program
        lines: Verbatim source lines
    """

    path: str
    program: ir.ProgramType
    lines: tuple[str, ...] = ()


LoadFn = Callable[[str], LoadedProgram]

# (program name, include reference)
LoadKey = tuple[str, str]


@dataclass
class LoadRegistry:
    """
    In-flight and finished loads for one resolution call.

    Each (program name, reference) pair maps to a single Future. Requests for
    a key that is already pending join that Future, so the loader runs at most
    once per key. A request for a program that is already an ancestor of the
    requester is a cycle: it joins the ancestor's Future instead of loading
    the program again, and assembly reports the cycle.
    """

    load_fn: LoadFn
    executor: Executor
    futures: dict[LoadKey, Future[LoadedProgram]] = field(default_factory=dict)
    parents: dict[LoadKey, LoadKey | None] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def seed(self, key: LoadKey, loaded: LoadedProgram) -> Future[LoadedProgram]:
        """Register an already loaded program (the root)."""
        future: Future[LoadedProgram] = Future()
        future.set_result(loaded)
        with self._lock:
            self.futures[key] = future
            self.parents[key] = None
        return future

    def request(self, key: LoadKey, requested_by: LoadKey) -> Future[LoadedProgram]:
        """Return the Future loading `key`, starting the load if needed."""
        name, reference = key
        with self._lock:
            future = self.futures.get(key)
            if future is not None:
                logger.debug("Include '%s' (%s) already requested; joining", name, reference)
                return future

            for ancestor in self._chain_keys(requested_by):
                if ancestor[0] == name:
                    logger.debug(
                        "Include '%s' (%s) is an ancestor of '%s'; not loading it again",
                        name,
                        reference,
                        requested_by[0],
                    )
                    future = self.futures[ancestor]
                    self.futures[key] = future
                    return future

            self.parents[key] = requested_by
            future = self.executor.submit(self._load, key, requested_by)
            self.futures[key] = future
            return future

    def _chain_keys(self, key: LoadKey | None) -> list[LoadKey]:
        # Caller holds the lock
        chain: list[LoadKey] = []
        while key is not None and key not in chain:
            chain.append(key)
            key = self.parents.get(key)
        return list(reversed(chain))

    def chain_to(self, key: LoadKey) -> list[str]:
        """Include chain (program names) from the root down to `key`, following first requesters."""
        with self._lock:
            return [name for name, _ in self._chain_keys(key)]

    def result(self, key: LoadKey) -> LoadedProgram:
        return self.futures[key].result()

    def _load(self, key: LoadKey, requested_by: LoadKey) -> LoadedProgram:
        name, reference = key
        logger.debug("Loading include '%s' from '%s'", name, reference)
        chain = self.chain_to(requested_by) + [name]
        try:
            loaded = self.load_fn(reference)
        except LoaderFailure as e:
            if e.chain:
                raise
            raise LoaderFailure(e.message, reference=e.reference or reference, chain=chain) from e
        except ResolutionError:
            raise
        except Exception as e:
            raise LoaderFailure(
                f"Cannot load include '{name}' from '{reference}': {e}",
                reference=reference,
                chain=chain,
            ) from e

        if loaded.program.program_name != name:
            raise ProgramNameMismatchError(
                f"Include '{name}' ({reference}) loaded program "
                f"'{loaded.program.program_name}' from {loaded.path}",
                chain=chain,
                names=[name, loaded.program.program_name],
            )
        return loaded


class IncludeResolver:
    """
    Resolves one root program into a shared ProgramMeta graph.

    Loading runs in two phases. First every reachable include reference is
    loaded, concurrently through the executor; a failed load aborts the run.
    Then the graph is assembled depth-first, in source order, in the calling
    thread. Assembly detects cycles, turns every program name into exactly one
    ProgramMeta and makes the first reference reached for a name its
    canonical one; later references to the same name are compared with it.
    """

    def __init__(self, load_fn: LoadFn, executor: Executor):
        self.registry = LoadRegistry(load_fn=load_fn, executor=executor)
        self.visiting: set[str] = set()
        self.completed: dict[str, ir.ProgramMeta] = {}
        self.canonical: dict[str, str] = {}

    def resolve(self, root: LoadedProgram, reference: str) -> ir.ProgramMeta:
        root_key = (root.program.program_name, reference)
        seed = self.registry.seed(root_key, root)
        self._load_all(root_key, seed)
        return self._assemble(root_key, [])

    def _load_all(self, root_key: LoadKey, seed: Future[LoadedProgram]) -> None:
        keys: dict[Future[LoadedProgram], LoadKey] = {seed: root_key}
        pending: set[Future[LoadedProgram]] = {seed}

        try:
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    key = keys[future]
                    loaded = future.result()
                    for include in loaded.program.includes.items():
                        child = self.registry.request(include, key)
                        if child not in keys:
                            keys[child] = include
                            pending.add(child)
        except BaseException:
            for future in pending:
                future.cancel()
            raise

    def _check_conflict(self, meta: ir.ProgramMeta, key: LoadKey, stack: list[str]) -> None:
        """A second reference resolved to an already assembled program name."""
        name = key[0]
        other = self.registry.result(key)
        if other.program != meta.program:
            raise DuplicateProgramNameConflictError(
                f"Program name '{name}' is claimed by {meta.file_path} and {other.path} "
                f"with different content",
                chain=stack + [name],
                names=[name],
            )
        logger.debug(
            "Program '%s' loaded from %s matches %s; sharing one instance",
            name,
            other.path,
            meta.file_path,
        )

    def _assemble(self, key: LoadKey, stack: list[str]) -> ir.ProgramMeta:
        name, reference = key
        if name in self.completed:
            meta = self.completed[name]
            if self.canonical[name] != reference:
                self._check_conflict(meta, key, stack)
            return meta
        if name in self.visiting:
            chain = stack[stack.index(name) :] + [name]
            raise CircularIncludeError(f"Circular include of '{name}'", chain=chain)

        self.visiting.add(name)
        self.canonical[name] = reference
        stack.append(name)

        loaded = self.registry.result(key)
        includes = {
            include_name: self._assemble((include_name, include_ref), stack)
            for include_name, include_ref in loaded.program.includes.items()
        }
        meta = ir.ProgramMeta(
            file_path=loaded.path,
            file_lines=list(loaded.lines),
            program=loaded.program,
            includes=includes,
        )

        stack.pop()
        self.visiting.discard(name)
        self.completed[name] = meta
        return meta
