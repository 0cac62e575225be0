"""
Field identifier allocation.

Fields written without an explicit key get an identifier inferred from
their position. Allocation walks a field list in source order with a cursor
that starts at the top of the 16-bit range and counts down, skipping every
value claimed by an explicit key anywhere in the same list:

    struct Point {
      i32 x,           # 65534
      65535: i32 y,    # explicit; the cursor skips it
      i32 z            # 65533
    }

Each field list is allocated on its own: a message's fields, a function's
parameters and a function's exceptions. Consts never go through the
allocator; their field id is fixed to 0.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .errors import (
    DuplicateFieldIdError,
    FieldIdAllocationExhaustedError,
    InvalidFieldIdError,
)
from .ir import FieldType

logger = logging.getLogger(__name__)

MAX_FIELD_ID = 65535
MIN_FIELD_ID = 1


class FieldIdAllocator:
    """
    Assigns identifiers to one field list.

    Args:
        start: First implicit identifier handed out (defaults to 65535)
        owner: Name of the containing declaration, used in error messages
    """

    def __init__(self, start: int = MAX_FIELD_ID, owner: str = ""):
        self.start = start
        self.owner = owner

    def _where(self) -> str:
        return f" in '{self.owner}'" if self.owner else ""

    def claimed_ids(self, fields: Sequence[FieldType]) -> set[int]:
        """
        Collect explicit ids in source order.

        Raises:
            InvalidFieldIdError: If an explicit id is outside 1..65535
            DuplicateFieldIdError: If two fields declare the same id
        """
        claimed: dict[int, str] = {}
        for field in fields:
            if field.declared_id is None:
                continue
            if not MIN_FIELD_ID <= field.declared_id <= MAX_FIELD_ID:
                raise InvalidFieldIdError(
                    f"Field '{field.name}'{self._where()} declares id {field.declared_id}; "
                    f"ids must be between {MIN_FIELD_ID} and {MAX_FIELD_ID}",
                    names=[field.name],
                )
            if field.declared_id in claimed:
                other = claimed[field.declared_id]
                raise DuplicateFieldIdError(
                    f"Duplicate field id {field.declared_id}{self._where()}: "
                    f"declared by '{other}' and '{field.name}'",
                    names=[other, field.name],
                )
            claimed[field.declared_id] = field.name
        return set(claimed)

    def allocate(self, fields: Sequence[FieldType]) -> list[FieldType]:
        """
        Return the fields with every id assigned.

        Explicit ids are kept; implicit ids are handed out from the cursor.

        Raises:
            InvalidFieldIdError: If an explicit id is outside 1..65535
            DuplicateFieldIdError: If two fields declare the same id
            FieldIdAllocationExhaustedError: If the cursor runs out of values
        """
        claimed = self.claimed_ids(fields)
        cursor = self.start
        allocated: list[FieldType] = []

        for field in fields:
            if field.declared_id is not None:
                allocated.append(field.model_copy(update={"id": field.declared_id}))
                continue

            while cursor in claimed:
                logger.debug("Field id %d is claimed explicitly%s; skipping", cursor, self._where())
                cursor -= 1
            if cursor < MIN_FIELD_ID:
                raise FieldIdAllocationExhaustedError(
                    f"No field id left for '{field.name}'{self._where()}: "
                    f"the allocator ran below {MIN_FIELD_ID}",
                    names=[field.name],
                )

            allocated.append(field.model_copy(update={"id": cursor}))
            claimed.add(cursor)
            cursor -= 1

        return allocated


def allocate_field_ids(fields: Sequence[FieldType], owner: str = "") -> list[FieldType]:
    """
    Convenience function to allocate one field list from the top of the range.

    Args:
        fields: Fields in source order
        owner: Name of the containing declaration

    Returns:
        Fields with ids assigned
    """
    return FieldIdAllocator(owner=owner).allocate(fields)
