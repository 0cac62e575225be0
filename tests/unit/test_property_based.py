"""
Property-based tests using Hypothesis.

These tests check invariants of field id allocation, annotation
containers and the text round trip across generated inputs.
"""

from __future__ import annotations

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from idlmeta.core import ir
from idlmeta.core.errors import FieldIdAllocationExhaustedError
from idlmeta.core.field_ids import MAX_FIELD_ID, FieldIdAllocator, allocate_field_ids
from idlmeta.core.parser import parse_program
from idlmeta.core.printer import format_program

# Prefixed so no generated name collides with a keyword
identifiers = st.from_regex(r"[a-z][a-z0-9]{0,6}", fullmatch=True).map(lambda s: f"n_{s}")
type_names = st.sampled_from(
    ["i32", "i64", "string", "bool", "double", "binary", "list<i64>", "map<string, i32>"]
)


@st.composite
def declared_ids(draw, max_size: int = 12, max_id: int = MAX_FIELD_ID) -> list[int | None]:
    """Field lists as optional declared ids; explicit ids are unique."""
    explicit = draw(st.lists(st.integers(1, max_id), unique=True, max_size=max_size))
    implicit = draw(st.integers(0, max_size))
    ids: list[int | None] = [*explicit, *([None] * implicit)]
    return draw(st.permutations(ids))


def _fields(ids: list[int | None]) -> list[ir.FieldType]:
    return [
        ir.FieldType(name=f"f{index}", type="i32", declared_id=declared_id)
        for index, declared_id in enumerate(ids)
    ]


# =============================================================================
# Field Id Allocation Properties
# =============================================================================


class TestFieldIdAllocationProperties:
    """Property-based tests for the field id allocator."""

    @given(declared_ids())
    @settings(max_examples=200)
    def test_implicit_ids_are_largest_unclaimed_values(self, ids: list[int | None]) -> None:
        """Invariant: implicit ids are the N largest unclaimed values, handed out in order."""
        claimed = {i for i in ids if i is not None}
        implicit_count = ids.count(None)

        allocated = allocate_field_ids(_fields(ids))
        implicit = [f.id for f, declared in zip(allocated, ids) if declared is None]

        top = range(MAX_FIELD_ID, MAX_FIELD_ID - implicit_count - len(claimed) - 1, -1)
        expected = [value for value in top if value not in claimed][:implicit_count]
        assert implicit == expected

    @given(declared_ids())
    @settings(max_examples=200)
    def test_explicit_ids_are_kept_and_all_ids_unique(self, ids: list[int | None]) -> None:
        """Invariant: explicit ids survive allocation and no two fields share an id."""
        allocated = allocate_field_ids(_fields(ids))

        for field, declared in zip(allocated, ids):
            assert field.declared_id == declared
            if declared is not None:
                assert field.id == declared
        assert len({f.id for f in allocated}) == len(allocated)

    @given(declared_ids())
    @settings(max_examples=100)
    def test_implicit_ids_strictly_decrease(self, ids: list[int | None]) -> None:
        """Invariant: implicit ids decrease in source order."""
        allocated = allocate_field_ids(_fields(ids))
        implicit = [f.id for f, declared in zip(allocated, ids) if declared is None]
        assert all(a > b for a, b in zip(implicit, implicit[1:]))

    @given(declared_ids(max_size=10, max_id=30), st.integers(1, 20))
    @settings(max_examples=200)
    def test_exhaustion_only_when_range_is_used_up(
        self, ids: list[int | None], start: int
    ) -> None:
        """Invariant: allocation fails exactly when implicit fields outnumber free ids below start."""
        claimed = {i for i in ids if i is not None}
        free = sum(1 for value in range(1, start + 1) if value not in claimed)
        allocator = FieldIdAllocator(start=start)

        if ids.count(None) > free:
            with pytest.raises(FieldIdAllocationExhaustedError):
                allocator.allocate(_fields(ids))
        else:
            allocated = allocator.allocate(_fields(ids))
            assert all(1 <= f.id <= MAX_FIELD_ID for f in allocated)


# =============================================================================
# Annotation Properties
# =============================================================================

annotation_keys = st.from_regex(r"[a-z][a-z0-9_.]{0,8}", fullmatch=True)


class TestAnnotationProperties:
    """Property-based tests for the annotation container."""

    @given(st.dictionaries(annotation_keys, st.text(max_size=20), max_size=10))
    @settings(max_examples=100)
    def test_iteration_is_sorted(self, values: dict[str, str]) -> None:
        """Invariant: keys, values and items all follow sorted key order."""
        annotations = ir.Annotations(values)
        assert list(annotations) == sorted(values)
        assert list(annotations.keys()) == sorted(values)
        assert list(annotations.values()) == [values[k] for k in sorted(values)]
        assert dict(annotations.items()) == values

    @given(st.lists(st.tuples(annotation_keys, st.text(max_size=20)), max_size=15))
    @settings(max_examples=200)
    def test_last_pair_wins(self, pairs: list[tuple[str, str]]) -> None:
        """Invariant: a repeated key holds the value of its last occurrence."""
        annotations = ir.Annotations.from_pairs(pairs)

        assert list(annotations) == sorted({key for key, _ in pairs})
        for key in annotations:
            assert annotations[key] == [value for k, value in pairs if k == key][-1]

    @given(st.lists(st.tuples(annotation_keys, st.text(max_size=20)), max_size=15))
    @settings(max_examples=100)
    def test_pair_order_does_not_change_equality_of_distinct_keys(
        self, pairs: list[tuple[str, str]]
    ) -> None:
        """Invariant: with distinct keys, pair order does not affect the container."""
        assume(len({key for key, _ in pairs}) == len(pairs))
        assert ir.Annotations.from_pairs(pairs) == ir.Annotations.from_pairs(reversed(pairs))


# =============================================================================
# Text Round Trip Properties
# =============================================================================


@st.composite
def struct_sources(draw) -> str:
    name = draw(identifiers).capitalize()
    field_names = draw(st.lists(identifiers, unique=True, max_size=6))
    explicit = draw(st.lists(st.integers(1, MAX_FIELD_ID), unique=True, max_size=len(field_names)))
    ids = draw(st.permutations([*explicit, *([None] * (len(field_names) - len(explicit)))]))

    lines = [f"struct {name} {{"]
    for field_name, declared_id in zip(field_names, ids):
        prefix = "" if declared_id is None else f"{declared_id}: "
        requirement = draw(st.sampled_from(["", "required ", "optional "]))
        lines.append(f"  {prefix}{requirement}{draw(type_names)} {field_name},")
    lines.append("}")
    return "\n".join(lines)


@st.composite
def enum_sources(draw) -> str:
    name = draw(identifiers).capitalize()
    value_names = draw(st.lists(identifiers, unique=True, min_size=1, max_size=6))
    lines = [f"enum {name} {{"]
    for value_name in value_names:
        value_id = draw(st.none() | st.integers(0, 1000))
        suffix = "" if value_id is None else f" = {value_id}"
        lines.append(f"  {value_name.upper()}{suffix},")
    lines.append("}")
    return "\n".join(lines)


program_sources = st.lists(st.one_of(struct_sources(), enum_sources()), max_size=5).map(
    "\n\n".join
)


class TestRoundTripProperties:
    """Property-based tests for parse_program and format_program."""

    @given(program_sources)
    @settings(max_examples=100)
    def test_parse_format_parse_is_stable(self, source: str) -> None:
        """Invariant: parse(format(parse(text))) == parse(text)."""
        program = parse_program(source, "generated.thrift")
        assert parse_program(format_program(program), "generated.thrift") == program

    @given(program_sources)
    @settings(max_examples=100)
    def test_format_is_idempotent(self, source: str) -> None:
        """Invariant: formatting already formatted text changes nothing."""
        formatted = format_program(parse_program(source, "generated.thrift"))
        assert format_program(parse_program(formatted, "generated.thrift")) == formatted
