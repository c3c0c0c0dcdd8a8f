from decimal import Decimal

import pytest

from tfdiff.core.errors import ParseError
from tfdiff.core.models import Collection, Declaration, DeclarationKind, Location, Value


def test_value_equality_is_kind_tagged():
    assert Value.string("1") != Value.number(1)
    assert Value.boolean(True) != Value.number(1)
    assert Value.null() != Value.string("")
    assert Value.list([]) != Value.map({})


def test_numbers_compare_numerically():
    assert Value.number(1) == Value.number(Decimal("1.0"))
    assert Value.number("2.50") == Value.number(2.5)
    with pytest.raises(TypeError):
        Value.number(True)


def test_collections_compare_recursively():
    left = Value.map({"a": Value.list([Value.number(1), Value.map({"b": Value.null()})])})
    right = Value.map({"a": Value.list([Value.number(1), Value.map({"b": Value.null()})])})
    assert left == right
    assert left != Value.map({"a": Value.list([Value.number(1)])})


def test_unknown_values():
    assert Value.unknown() == Value.unknown()
    assert Value.unknown("var.a") == Value.unknown("var.a")
    assert Value.unknown("var.a") != Value.unknown("var.b")
    assert Value.unknown() != Value.null()


def test_values_are_immutable():
    value = Value.list([Value.string("x")])
    with pytest.raises(AttributeError):
        value.kind = None
    with pytest.raises(TypeError):
        value.data[0] = Value.string("y")
    with pytest.raises(TypeError):
        Value.map({"a": Value.null()}).data["a"] = Value.string("z")


def test_to_python():
    value = Value.map({"list": Value.list([Value.string("a"), Value.unknown()]), "flag": Value.boolean(False)})
    assert value.to_python() == {"list": ["a", "(unknown)"], "flag": False}


def test_collection_mapping():
    declaration = Declaration("t.a", DeclarationKind.RESOURCE, location=Location("main.tf", 3))
    collection = Collection({"t.a": declaration, "module.m": Declaration("module.m", DeclarationKind.MODULE)})

    assert len(collection) == 2
    assert collection.names() == ["module.m", "t.a"]
    assert "t.a" in collection
    assert str(collection["t.a"].location) == "main.tf:3"


def test_parse_error_location_formatting():
    assert str(ParseError("boom", "main.tf", 3, 7)) == "main.tf:3:7 boom"
    assert str(ParseError("boom", "main.tf")) == "main.tf boom"
    assert str(ParseError("boom")) == "boom"
