"""
Annotation container for idlmeta IR.

Annotations are free-form string key/value pairs attached to enum values,
fields, messages, functions, services and consts:

    struct User {
      1: string name (max_length = "64")
    } (table = "users")

Keys are always presented in ascending lexical order. When the same key is
supplied more than once, the last value wins.
"""

from __future__ import annotations

import logging
from collections.abc import ItemsView, Iterable, Iterator, KeysView, ValuesView

from pydantic import ConfigDict, Field, RootModel, field_validator

logger = logging.getLogger(__name__)


class Annotations(RootModel[dict[str, str]]):
    """Read-only, key-sorted mapping of annotation keys to values."""

    root: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @field_validator("root")
    @classmethod
    def sort_keys(cls, v: dict[str, str]) -> dict[str, str]:
        """Store pairs in key order so every view iterates sorted."""
        return dict(sorted(v.items()))

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str]]) -> Annotations:
        """
        Build a container from (key, value) pairs in source order.

        A repeated key overwrites the earlier value.
        """
        collected: dict[str, str] = {}
        for key, value in pairs:
            if key in collected:
                logger.debug(
                    "Annotation '%s' redefined: %r replaces %r", key, value, collected[key]
                )
            collected[key] = value
        return cls(collected)

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def __getitem__(self, key: str) -> str:
        return self.root[key]

    def __contains__(self, key: object) -> bool:
        return key in self.root

    def __bool__(self) -> bool:
        return bool(self.root)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.root.get(key, default)

    def keys(self) -> KeysView[str]:
        return self.root.keys()

    def values(self) -> ValuesView[str]:
        return self.root.values()

    def items(self) -> ItemsView[str, str]:
        return self.root.items()
