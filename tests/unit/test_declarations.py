"""Tests for the declaration union and the program models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from idlmeta.core import ir
from idlmeta.core.errors import ErrorKind, MalformedUnionError

STATUS = ir.EnumType(name="Status", values=[ir.EnumValue(name="ON", id=1)])


class TestConstruction:
    @pytest.mark.parametrize(
        ("value", "kind"),
        [
            (STATUS, ir.DeclarationKind.ENUM),
            (ir.TypedefType(name="UserId", type="i64"), ir.DeclarationKind.TYPEDEF),
            (ir.MessageType(name="User"), ir.DeclarationKind.MESSAGE),
            (ir.ServiceType(name="Users"), ir.DeclarationKind.SERVICE),
            (ir.ConstType(name="MAX", type="i32", value="1"), ir.DeclarationKind.CONST),
        ],
    )
    def test_of_derives_kind(self, value, kind):
        declaration = ir.Declaration.of(value)
        assert declaration.variant == (kind, value)
        assert declaration.name == value.name

    def test_accessors_return_only_the_set_variant(self):
        declaration = ir.Declaration.of(STATUS)
        assert declaration.enum is STATUS
        assert declaration.message is None
        assert declaration.service is None
        assert declaration.typedef is None
        assert declaration.const is None

    def test_of_rejects_non_declaration_entities(self):
        with pytest.raises(MalformedUnionError):
            ir.Declaration.of(ir.FieldType(name="x", type="i32"))

    def test_kind_must_match_value(self):
        with pytest.raises(MalformedUnionError) as exc_info:
            ir.Declaration(kind=ir.DeclarationKind.SERVICE, value=STATUS)
        assert exc_info.value.kind == ErrorKind.MALFORMED_UNION
        assert exc_info.value.names == ("Status",)


class TestWireForm:
    def test_to_wire_has_single_key(self):
        wire = ir.Declaration.of(STATUS).to_wire()
        assert list(wire) == ["decl_enum"]
        assert wire["decl_enum"]["name"] == "Status"

    def test_from_wire(self):
        declaration = ir.Declaration.from_wire(
            {"decl_typedef": {"name": "UserId", "type": "i64"}}
        )
        assert declaration.kind == ir.DeclarationKind.TYPEDEF
        assert declaration.typedef == ir.TypedefType(name="UserId", type="i64")

    def test_unset_keys_are_ignored(self):
        declaration = ir.Declaration.from_wire(
            {"decl_enum": None, "decl_const": {"name": "A", "type": "i32", "value": "1"}}
        )
        assert declaration.kind == ir.DeclarationKind.CONST

    def test_no_variant_is_malformed(self):
        with pytest.raises(MalformedUnionError, match="found none"):
            ir.Declaration.from_wire({})

    def test_two_variants_are_malformed(self):
        with pytest.raises(MalformedUnionError) as exc_info:
            ir.Declaration.from_wire(
                {
                    "decl_enum": {"name": "Status"},
                    "decl_const": {"name": "MAX", "type": "i32", "value": "1"},
                }
            )
        assert set(exc_info.value.names) == {"Status", "MAX"}

    def test_unknown_key_is_malformed(self):
        with pytest.raises(MalformedUnionError, match="decl_table"):
            ir.Declaration.from_wire({"decl_table": {"name": "T"}})

    def test_program_round_trip(self, user_program):
        restored = ir.ProgramType.model_validate(user_program.model_dump())
        assert restored == user_program

    def test_program_json_round_trip(self, user_program):
        restored = ir.ProgramType.model_validate_json(user_program.model_dump_json())
        assert restored == user_program


class TestImmutability:
    def test_declaration_is_frozen(self):
        declaration = ir.Declaration.of(STATUS)
        with pytest.raises(ValidationError):
            declaration.kind = ir.DeclarationKind.CONST

    def test_entities_are_frozen(self):
        with pytest.raises(ValidationError):
            STATUS.name = "Other"


class TestProgram:
    def test_kind_views(self, user_program):
        assert [e.name for e in user_program.enums] == ["Status"]
        assert [m.name for m in user_program.messages] == ["Named", "User", "NotFound"]
        assert [s.name for s in user_program.services] == ["Users"]
        assert [c.name for c in user_program.consts] == ["MAX"]
        assert user_program.typedefs == []

    def test_get(self, user_program):
        assert user_program.get("User").message.implementing == "Named"
        assert user_program.get("Missing") is None

    def test_namespaces_sorted(self):
        program = ir.ProgramType(program_name="p", namespaces={"py": "a", "java": "b", "*": "c"})
        assert list(program.namespaces) == ["*", "java", "py"]

    def test_message_lookups(self, user_program):
        user = user_program.get("User").message
        assert user.field("age").type == "i32"
        assert user.field("missing") is None
        assert user_program.get("Named").message.is_interface
        assert user_program.get("Users").service.function("get").return_type == "User"
