"""Tests for the composition engine: traversal, ordering, locations, optional fields."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from pydantic import BaseModel

from fieldguard.config import Settings
from fieldguard.result import Err, Ok
from fieldguard.validation import (
    Capitalize,
    Contains,
    CustomModifier,
    Email,
    Engine,
    ErrorKind,
    FieldBinding,
    Length,
    Lowercase,
    MustMatch,
    Range,
    RecordView,
    RecursionDepthError,
    Regex,
    Required,
    Schema,
    SchemaBuilder,
    SchemaNotFoundError,
    SchemaRegistry,
    Trim,
    Uppercase,
    Url,
    ValidationError,
    validatable,
)
from tests.conftest import Card, Phone, Preference, SignupData


class TestSignupScenario:
    def test_valid_record_passes(self, engine: Engine, valid_signup: SignupData) -> None:
        result = engine.validate(valid_signup)
        assert result.is_ok()
        assert result == Ok(None)

    def test_failures_point_to_reported_field_names(self, engine: Engine, invalid_signup: SignupData) -> None:
        errors = engine.validate(invalid_signup).unwrap_err()

        assert [str(e.location) for e in errors] == [
            "/firstName",
            "/phone/number",
            "/card/number",
            "/card/cvv",
            "/preferences/0/name",
        ]
        assert errors[0].code == "length"
        assert errors[0].params["actual"] == 0
        assert errors[1].params["actual"] == "123 invalid"
        assert errors[2].params["actual"] == "1234567890123456"
        assert errors[3].code == "range"
        assert errors[3].params["actual"] == 1
        assert errors[3].params["min"] == 100.0
        assert errors[3].params["max"] == 9999.0
        assert errors[4].params["actual"] == 3

    def test_all_errors_are_field_errors_with_messages(self, engine: Engine, invalid_signup: SignupData) -> None:
        errors = engine.validate(invalid_signup).unwrap_err()
        assert all(e.kind is ErrorKind.FIELD for e in errors)
        assert all(e.message for e in errors)
        assert errors.schema_errors() == []

    def test_schema_rule_appended_after_field_errors(self, engine: Engine, invalid_signup: SignupData) -> None:
        invalid_signup.mail = "bob@gmail.com"
        errors = engine.validate(invalid_signup).unwrap_err()
        assert len(errors) == 6
        assert errors[-1].code == "stupid_rule"
        assert errors[-1].kind is ErrorKind.SCHEMA
        assert str(errors[-1].location) == ""

    def test_schema_rule_runs_alone(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.mail = "bob@gmail.com"
        errors = engine.validate(valid_signup).unwrap_err()
        assert [e.code for e in errors] == ["stupid_rule"]

    def test_custom_validator_code(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.first_name = "xXxShad0wxXx"
        errors = engine.validate(valid_signup).unwrap_err()
        assert len(errors) == 1
        assert errors[0].code == "terrible_username"
        assert str(errors[0].location) == "/firstName"

    def test_absent_nested_record_is_skipped(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.card = None
        valid_signup.preferences = []
        assert engine.validate(valid_signup).is_ok()

    def test_collection_elements_are_indexed(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.preferences = [
            Preference(name="marketing", value=True),
            Preference(name="ab", value=True),
            None,
            Preference(name="x", value=False),
        ]
        errors = engine.validate(valid_signup).unwrap_err()
        assert [str(e.location) for e in errors] == ["/preferences/1/name", "/preferences/3/name"]

    def test_error_count_matches_failing_rules(self, engine: Engine, invalid_signup: SignupData) -> None:
        invalid_signup.mail = "not-an-email"
        invalid_signup.site = "hello.com"
        invalid_signup.age = 30
        errors = engine.validate(invalid_signup).unwrap_err()
        assert len(errors) == 8

    def test_validate_is_repeatable(self, engine: Engine, invalid_signup: SignupData) -> None:
        first = engine.validate(invalid_signup)
        second = engine.validate(invalid_signup)
        assert first == second
        assert first.unwrap_err() is not second.unwrap_err()

    def test_error_report(self, engine: Engine, invalid_signup: SignupData) -> None:
        report = engine.validate(invalid_signup).unwrap_err().to_report()
        assert report.error_count == 5
        assert report.errors[3].model_dump() == {
            "location": "/card/cvv",
            "code": "range",
            "message": "Value must be between 100.0 and 9999.0, got 1",
            "params": {"actual": 1, "min": 100.0, "max": 9999.0},
        }


class TestOrdering:
    SCHEMA = Schema(tuple(FieldBinding(name, rules=(Length(min=3), Contains("x"))) for name in ("a", "b", "c")))

    def _codes_at(self, engine: Engine, record: dict) -> list[tuple[str, str]]:
        result = engine.validate(record, self.SCHEMA)
        return [] if result.is_ok() else [(str(e.location), e.code) for e in result.unwrap_err()]

    def test_declaration_order(self, engine: Engine) -> None:
        assert self._codes_at(engine, {"a": "", "b": "xxx", "c": "y"}) == [
            ("/a", "length"),
            ("/a", "contains"),
            ("/c", "length"),
            ("/c", "contains"),
        ]

    def test_relative_order_independent_of_which_fields_fail(self, engine: Engine) -> None:
        everything = self._codes_at(engine, {"a": "", "b": "", "c": ""})
        partial = self._codes_at(engine, {"a": "xxxx", "b": "", "c": "y"})
        assert partial == [e for e in everything if e in partial]


class TestOptionalFields:
    SCHEMA = Schema((
        FieldBinding("name", rules=(Length(min=1, max=10),)),
        FieldBinding("age", rules=(Range(min=1, max=100),)),
        FieldBinding("email", rules=(Email(),)),
        FieldBinding("url", rules=(Url(),)),
        FieldBinding("text", rules=(Contains("@"),)),
        FieldBinding("re", rules=(Regex(r"[a-z]{2}"),)),
    ))

    def test_absent_values_skip_validators(self, engine: Engine) -> None:
        assert engine.validate({}, self.SCHEMA).is_ok()
        assert engine.validate(dict.fromkeys(["name", "age", "email", "url", "text", "re"]), self.SCHEMA).is_ok()

    def test_present_values_validate_like_plain_fields(self, engine: Engine) -> None:
        ok = {"name": "al", "age": 20, "email": "hi@gmail.com", "url": "http://google.com", "text": "@someone", "re": "hi"}
        assert engine.validate(ok, self.SCHEMA).is_ok()
        bad = {"name": "", "age": 0, "email": "hi", "url": "google", "text": "someone", "re": "H1"}
        errors = engine.validate(bad, self.SCHEMA).unwrap_err()
        assert [e.code for e in errors] == ["length", "range", "email", "url", "contains", "regex"]

    def test_required_only_rule_for_absent(self, engine: Engine) -> None:
        schema = Schema((FieldBinding("token", rules=(Required(), Length(min=5))),))
        errors = engine.validate({"token": None}, schema).unwrap_err()
        assert [(str(e.location), e.code, e.message) for e in errors] == [("/token", "required", "This field is required")]
        assert engine.validate({"token": ""}, schema).unwrap_err()[0].code == "length"
        assert engine.validate({"token": "abcdef"}, schema).is_ok()


class TestOverrides:
    def test_code_and_message_override(self, engine: Engine) -> None:
        schema = Schema((FieldBinding("val", rules=(Length(min=5, max=10, code="oops", message="too short"),)),))
        error = engine.validate({"val": ""}, schema).unwrap_err()[0]
        assert error.code == "oops"
        assert error.message == "too short"
        assert error.params["min"] == 5

    def test_code_override_keeps_stock_message(self, engine: Engine) -> None:
        schema = Schema((FieldBinding("val", rules=(Contains("he", code="dis dont have he yo"),)),))
        error = engine.validate({"val": ""}, schema).unwrap_err()[0]
        assert error.code == "dis dont have he yo"
        assert error.message == "Value must contain 'he'"


class TestCrossField:
    SCHEMA = Schema((
        FieldBinding("password", rules=(Length(min=8),)),
        FieldBinding("confirm", rules=(MustMatch("password"),)),
    ))

    def test_must_match(self, engine: Engine) -> None:
        assert engine.validate({"password": "hunter22", "confirm": "hunter22"}, self.SCHEMA).is_ok()
        errors = engine.validate({"password": "hunter22", "confirm": "hunter23"}, self.SCHEMA).unwrap_err()
        assert [(str(e.location), e.code) for e in errors] == [("/confirm", "must_match")]
        assert errors[0].params["other"] == "password"

    def test_must_match_fails_when_other_is_absent(self, engine: Engine) -> None:
        errors = engine.validate({"confirm": "hunter22"}, self.SCHEMA).unwrap_err()
        assert errors[0].code == "must_match"

    def test_nested_schema_errors_are_prefixed(self, engine: Engine) -> None:
        def no_test_numbers(phone: RecordView):
            return Err(ValidationError.schema("test_number")) if phone.number.startswith("+1415") else Ok(None)

        inner = Schema((), rules=(no_test_numbers,))
        outer = Schema((FieldBinding("phone", nested=True, schema=inner),))
        errors = engine.validate({"phone": Phone("+14152370800")}, outer).unwrap_err()
        assert errors[0].kind is ErrorKind.SCHEMA
        assert str(errors[0].location) == "/phone"

    def test_schema_rule_may_name_fields(self, engine: Engine) -> None:
        def dates_ordered(rec: RecordView):
            if rec["start"] > rec["end"]:
                return Err(ValidationError.field("date_order", field="end"))
            return None

        schema = SchemaBuilder().field("start").field("end").schema_rule(dates_ordered).build()
        errors = engine.validate({"start": 5, "end": 1}, schema).unwrap_err()
        assert [(e.kind, str(e.location), e.code) for e in errors] == [(ErrorKind.FIELD, "/end", "date_order")]

    def test_schema_rule_may_return_bare_error(self, engine: Engine) -> None:
        schema = Schema((), rules=(lambda rec: ValidationError.schema("always"),))
        errors = engine.validate({}, schema).unwrap_err()
        assert [(e.kind, e.code) for e in errors] == [(ErrorKind.SCHEMA, "always")]

    def test_schema_rule_sees_read_only_view(self, engine: Engine) -> None:
        seen: list = []

        def inspect(rec: RecordView):
            seen.append((type(rec), rec.name, rec.get("missing")))
            rec.name = "changed"

        record = {"name": "bob"}
        with pytest.raises(AttributeError):
            engine.validate(record, Schema((FieldBinding("name"),), rules=(inspect,)))
        assert record == {"name": "bob"}
        assert seen[0][:2] == (RecordView, "bob")

    def test_schema_rule_cannot_write_items(self, engine: Engine) -> None:
        def overwrite(rec: RecordView):
            rec["name"] = "changed"

        record = {"name": "bob"}
        with pytest.raises(TypeError):
            engine.validate(record, Schema((), rules=(overwrite,)))
        assert record == {"name": "bob"}

    def test_passing_schema_rule_leaves_record_unchanged(self, engine: Engine, invalid_signup: SignupData) -> None:
        invalid_signup.mail = "bob@gmail.com"
        before = repr(invalid_signup)
        engine.validate(invalid_signup)
        assert repr(invalid_signup) == before

    def test_schema_rule_bad_return_type(self, engine: Engine) -> None:
        schema = Schema((), rules=(lambda rec: "nope",))
        with pytest.raises(TypeError):
            engine.validate({}, schema)


class TestModify:
    def test_modifiers_then_validators(self, engine: Engine) -> None:
        schema = Schema((FieldBinding("email", rules=(Email(), Length(max=11)), modifiers=(Trim(), Lowercase())),))
        record = {"email": "  Bob@Bob.COM  "}
        assert engine.validify(record, schema).is_ok()
        assert record["email"] == "bob@bob.com"

    def test_validate_does_not_modify(self, engine: Engine) -> None:
        schema = Schema((FieldBinding("name", modifiers=(Trim(),), rules=(Length(max=3),)),))
        record = {"name": "  al  "}
        assert engine.validate(record, schema).is_err()
        assert record["name"] == "  al  "

    def test_modify_is_idempotent_for_builtin_modifiers(self, engine: Engine) -> None:
        schema = Schema((
            FieldBinding("a", modifiers=(Trim(), Uppercase())),
            FieldBinding("b", modifiers=(Lowercase(), Capitalize())),
            FieldBinding("tags", modifiers=(Trim(), Lowercase())),
        ))
        record = {"a": "  shout ", "b": "hELLO World", "tags": [" A ", "b "]}
        engine.modify(record, schema)
        once = dict(record)
        engine.modify(record, schema)
        assert record == once == {"a": "SHOUT", "b": "Hello world", "tags": ["a", "b"]}

    def test_custom_in_place_modifier(self, engine: Engine) -> None:
        schema = Schema((FieldBinding("tags", modifiers=(CustomModifier(lambda v: v.append("seen")),)),))
        record = {"tags": ["a"]}
        engine.modify(record, schema)
        engine.modify(record, schema)
        assert record["tags"] == ["a", "seen", "seen"]

    def test_absent_values_are_not_modified(self, engine: Engine) -> None:
        calls: list = []
        schema = Schema((FieldBinding("x", modifiers=(CustomModifier(calls.append),)),))
        engine.modify({"x": None}, schema)
        assert calls == []

    def test_validify_nested(self) -> None:
        registry = SchemaRegistry()

        @validatable(
            FieldBinding("a", modifiers=(Trim(), Uppercase()), rules=(Length(equal=12),)),
            FieldBinding("b", modifiers=(Capitalize(),), rules=(Length(equal=14),)),
            registry=registry,
        )
        @dataclass
        class Nestor:
            a: str
            b: str

        @validatable(
            FieldBinding("a", modifiers=(Lowercase(), Trim()), rules=(Length(equal=8),)),
            FieldBinding("b", modifiers=(Trim(), Uppercase())),
            FieldBinding("c", modifiers=(CustomModifier(lambda _: "modified"),)),
            FieldBinding("d", modifiers=(CustomModifier(lambda _: "modified"),)),
            FieldBinding("nested", nested=True),
            registry=registry,
        )
        @dataclass
        class Testor:
            a: str
            b: str | None
            c: str
            d: str | None
            nested: Nestor

        test = Testor(
            a="   LOWER ME     ",
            b="  makemeshout   ",
            c="I'll never be the same",
            d="Me neither",
            nested=Nestor(a="   notsotinynow   ", b="capitalize me."),
        )
        assert Engine(registry=registry).validify(test).is_ok()
        assert test.a == "lower me"
        assert test.b == "MAKEMESHOUT"
        assert test.c == "modified"
        assert test.d == "modified"
        assert test.nested.a == "NOTSOTINYNOW"
        assert test.nested.b == "Capitalize me."


class TestRegistry:
    def test_missing_schema(self, engine: Engine) -> None:
        with pytest.raises(SchemaNotFoundError):
            engine.validate(object())

    def test_subclass_inherits_schema(self, engine: Engine) -> None:
        class PremiumCard(Card):
            pass

        errors = engine.validate(PremiumCard(number="1234567890123456", cvv=123)).unwrap_err()
        assert [str(e.location) for e in errors] == ["/number"]

    def test_pydantic_model_record(self) -> None:
        registry = SchemaRegistry()

        class Account(BaseModel):
            handle: str
            email: str | None = None

        registry.register(Account, SchemaBuilder()
            .field("handle", Length(min=3), modifiers=(Trim(),))
            .field("email", Email())
            .build())
        engine = Engine(registry=registry)

        account = Account(handle="  al  ")
        errors = engine.validify(account).unwrap_err()
        assert account.handle == "al"
        assert [(str(e.location), e.code) for e in errors] == [("/handle", "length")]


class TestShapeMismatch:
    def test_unregistered_nested_value_is_a_field_error(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.card = {"number": "5236313877109142", "cvv": 123}
        valid_signup.first_name = ""
        errors = engine.validate(valid_signup).unwrap_err()
        assert [(str(e.location), e.code) for e in errors] == [("/firstName", "length"), ("/card", "nested")]
        assert dict(errors[1].params) == {"expected_type": "record", "actual_type": "dict"}
        assert errors[1].message == "Expected record, got dict"

    def test_later_fields_still_reported(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.phone = "+14152370800"
        valid_signup.preferences = [Preference(name="ab", value=True)]
        errors = engine.validate(valid_signup).unwrap_err()
        assert [(str(e.location), e.code) for e in errors] == [("/phone", "nested"), ("/preferences/0/name", "length")]

    def test_collection_element_without_schema(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.preferences = [Preference(name="marketing", value=True), "marketing"]
        errors = engine.validate(valid_signup).unwrap_err()
        assert [(str(e.location), e.code) for e in errors] == [("/preferences/1", "nested")]
        assert errors[0].params["actual_type"] == "str"

    @pytest.mark.parametrize("value,actual_type", [("marketing", "str"), (5, "int")])
    def test_collection_field_holding_scalar(self, engine: Engine, valid_signup: SignupData, value, actual_type) -> None:
        valid_signup.preferences = value
        errors = engine.validate(valid_signup).unwrap_err()
        assert [(str(e.location), e.code) for e in errors] == [("/preferences", "nested")]
        assert dict(errors[0].params) == {"expected_type": "collection", "actual_type": actual_type}

    def test_modify_skips_mismatched_values(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.card = {"number": " 1 "}
        engine.modify(valid_signup)
        assert valid_signup.card == {"number": " 1 "}

    def test_mapping_collection_uses_keys(self, engine: Engine, valid_signup: SignupData) -> None:
        valid_signup.preferences = {
            "email": Preference(name="marketing", value=True),
            "sms": Preference(name="x", value=False),
            "push": None,
        }
        errors = engine.validate(valid_signup).unwrap_err()
        assert [str(e.location) for e in errors] == ["/preferences/sms/name"]

    def test_mapping_collection_is_modified_per_value(self, engine: Engine) -> None:
        item = Schema((FieldBinding("name", modifiers=(Trim(),)),))
        schema = Schema((FieldBinding("items", collection=True, schema=item),))
        record = {"items": {"a": {"name": " x "}, 7: {"name": "y "}}}
        engine.modify(record, schema)
        assert record == {"items": {"a": {"name": "x"}, 7: {"name": "y"}}}


class TestDepthGuard:
    @dataclass
    class Node:
        name: str
        child: "TestDepthGuard.Node | None" = None
        children: list = field(default_factory=list)

    def _chain(self, depth: int) -> "TestDepthGuard.Node":
        node = self.Node(name="leaf")
        for i in range(depth):
            node = self.Node(name=f"n{i}", child=node)
        return node

    def _engine(self, max_depth: int) -> Engine:
        registry = SchemaRegistry()
        registry.register(self.Node, Schema((
            FieldBinding("name", rules=(Length(min=2),)),
            FieldBinding("child", nested=True),
            FieldBinding("children", collection=True),
        )))
        return Engine(registry=registry, settings=Settings(_env_file=None, max_depth=max_depth))

    def test_deep_locations(self) -> None:
        root = self._chain(3)
        root.child.child.name = "x"
        errors = self._engine(10).validate(root).unwrap_err()
        assert str(errors[0].location) == "/child/child/name"

    def test_guard_trips(self) -> None:
        with pytest.raises(RecursionDepthError):
            self._engine(2).validate(self._chain(5))

    def test_guard_applies_to_modify(self) -> None:
        with pytest.raises(RecursionDepthError):
            self._engine(2).modify(self._chain(5))
