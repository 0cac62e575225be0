"""Shared pytest fixtures for idlmeta tests."""

from __future__ import annotations

import random
import threading
import time
from collections import Counter

import pytest

from idlmeta.core import ir
from idlmeta.core.parser import parse_program
from idlmeta.core.resolver_impl import LoadedProgram


class MemoryLoader:
    """
    Loader serving IDL sources from a dict, counting calls per reference.

    `delay` sleeps a fixed time per load; `jitter` adds a random extra sleep
    up to that many seconds so loads finish in varying order.
    """

    def __init__(self, sources: dict[str, str], delay: float = 0.0, jitter: float = 0.0):
        self.sources = sources
        self.delay = delay
        self.jitter = jitter
        self.calls: Counter[str] = Counter()
        self._lock = threading.Lock()

    def load(self, reference: str) -> LoadedProgram:
        with self._lock:
            self.calls[reference] += 1
        if self.delay or self.jitter:
            time.sleep(self.delay + random.uniform(0.0, self.jitter))
        if reference not in self.sources:
            raise FileNotFoundError(f"No such file: {reference}")
        text = self.sources[reference]
        return LoadedProgram(
            path=f"/idl/{reference}",
            program=parse_program(text, reference),
            lines=tuple(text.splitlines()),
        )


@pytest.fixture
def memory_loader():
    """Return a factory building MemoryLoader instances."""
    return MemoryLoader


@pytest.fixture
def user_program() -> ir.ProgramType:
    """Return a small valid program with an interface and a service."""
    named = ir.MessageType(
        name="Named",
        variant=ir.MessageVariant.INTERFACE,
        fields=[ir.FieldType(name="name", type="string", id=65535)],
    )
    user = ir.MessageType(
        name="User",
        implementing="Named",
        fields=[
            ir.FieldType(name="name", type="string", id=1, declared_id=1),
            ir.FieldType(name="age", type="i32", id=2, declared_id=2),
        ],
    )
    not_found = ir.MessageType(
        name="NotFound",
        variant=ir.MessageVariant.EXCEPTION,
        fields=[ir.FieldType(name="message", type="string", id=1, declared_id=1)],
    )
    service = ir.ServiceType(
        name="Users",
        functions=[
            ir.FunctionType(
                name="get",
                return_type="User",
                params=[ir.FieldType(name="id", type="i64", id=1, declared_id=1)],
                exceptions=[ir.FieldType(name="missing", type="NotFound", id=1, declared_id=1)],
            )
        ],
    )
    status = ir.EnumType(
        name="Status",
        values=[ir.EnumValue(name="ACTIVE", id=1), ir.EnumValue(name="CLOSED", id=2)],
    )
    return ir.ProgramType(
        program_name="users",
        namespaces={"py": "example.users"},
        declarations=[
            ir.Declaration.of(status),
            ir.Declaration.of(named),
            ir.Declaration.of(user),
            ir.Declaration.of(not_found),
            ir.Declaration.of(service),
            ir.Declaration.of(ir.ConstType(name="MAX", type="i32", value="10")),
        ],
    )
