"""Shared test fixtures: a sign-up record graph with nested and collection fields."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from fieldguard.config import Settings
from fieldguard.result import Err, Ok
from fieldguard.validation import (
    CreditCard,
    Custom,
    Email,
    Engine,
    FieldBinding,
    Length,
    Phone as PhoneRule,
    Range,
    RecordView,
    Schema,
    SchemaRegistry,
    Url,
    ValidationError,
    ValidationErrors,
)


@dataclass
class Phone:
    number: str


@dataclass
class Card:
    number: str
    cvv: int


@dataclass
class Preference:
    name: str
    value: bool


@dataclass
class SignupData:
    mail: str
    site: str
    first_name: str
    age: int
    phone: Phone
    card: Card | None = None
    preferences: list[Preference] = field(default_factory=list)


def validate_unique_username(username: str):
    if username == "xXxShad0wxXx":
        return Err(ValidationError.field("terrible_username"))
    return Ok(None)


def validate_signup(data: RecordView):
    errors = ValidationErrors()
    if data.mail.endswith("gmail.com") and data.age == 18:
        errors.add(ValidationError.schema("stupid_rule"))
    return Err(errors) if not errors.is_empty() else Ok(None)


PHONE_SCHEMA = Schema((FieldBinding("number", rules=(PhoneRule(),)),))

CARD_SCHEMA = Schema((
    FieldBinding("number", rules=(CreditCard(),)),
    FieldBinding("cvv", rules=(Range(min=100, max=9999),)),
))

PREFERENCE_SCHEMA = Schema((FieldBinding("name", rules=(Length(min=4),)),))

SIGNUP_SCHEMA = Schema(
    (
        FieldBinding("mail", rules=(Email(),)),
        FieldBinding("site", rules=(Url(),)),
        FieldBinding("first_name", path="firstName", rules=(Length(min=1), Custom(validate_unique_username))),
        FieldBinding("age", rules=(Range(min=18, max=20),)),
        FieldBinding("phone", nested=True),
        FieldBinding("card", nested=True),
        FieldBinding("preferences", collection=True),
    ),
    rules=(validate_signup,),
)


@pytest.fixture
def registry() -> SchemaRegistry:
    reg = SchemaRegistry()
    reg.register(Phone, PHONE_SCHEMA)
    reg.register(Card, CARD_SCHEMA)
    reg.register(Preference, PREFERENCE_SCHEMA)
    reg.register(SignupData, SIGNUP_SCHEMA)
    return reg


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def engine(registry: SchemaRegistry, settings: Settings) -> Engine:
    return Engine(registry=registry, settings=settings)


@pytest.fixture
def valid_signup() -> SignupData:
    return SignupData(
        mail="bob@bob.com",
        site="http://hello.com",
        first_name="Bob",
        age=18,
        phone=Phone(number="+14152370800"),
        card=Card(number="5236313877109142", cvv=123),
        preferences=[Preference(name="marketing", value=False)],
    )


@pytest.fixture
def invalid_signup() -> SignupData:
    return SignupData(
        mail="bob@bob.com",
        site="http://hello.com",
        first_name="",
        age=18,
        phone=Phone(number="123 invalid"),
        card=Card(number="1234567890123456", cvv=1),
        preferences=[Preference(name="abc", value=True)],
    )
