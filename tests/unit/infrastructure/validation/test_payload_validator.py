import pytest

from cmscli.infrastructure.validation.payload_validator import (
    extract_allowed_values,
    infer_expected_type,
    validate_payload,
)

SCHEMA = {
    "apiFields": [
        {"fieldId": "title", "kind": "text", "required": True},
        {"fieldId": "views", "kind": "number"},
        {"fieldId": "featured", "kind": "boolean"},
        {"fieldId": "category", "kind": "select", "selectItems": [{"value": "news"}, {"value": "blog"}]},
        {"fieldId": "tags", "kind": "select", "type": "array", "selectItems": [{"value": "a"}, {"value": "b"}]},
        {"fieldId": "related", "kind": "relationList", "multiple": True},
        {"fieldId": "author", "kind": "relation"},
    ]
}


def test_valid_payload():
    result = validate_payload({"title": "Hello", "views": 3, "featured": False, "category": "news"}, SCHEMA)
    assert result.valid
    assert result.errors == []
    assert result.warnings == []


def test_integers_beyond_float_range_are_numbers():
    huge = int("9" * 400)

    result = validate_payload({"title": "Hello", "views": huge}, SCHEMA)
    assert result.valid
    assert result.errors == []

    mismatch = validate_payload({"title": huge}, SCHEMA)
    assert mismatch.errors == ["Field type mismatch: title expected string"]


def test_payload_must_be_an_object():
    result = validate_payload(["title"], SCHEMA)
    assert not result.valid
    assert result.errors == ["Payload must be a JSON object"]


def test_missing_required_and_unknown_fields():
    result = validate_payload({"subtitle": "x"}, SCHEMA)
    assert result.errors == ["Required field is missing: title"]
    assert result.warnings == ["Unknown field in payload: subtitle"]
    assert result.to_dict()["issues"][1] == {
        "severity": "warning",
        "field": "subtitle",
        "message": "Unknown field in payload: subtitle",
    }


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"title": 1}, "Field type mismatch: title expected string"),
        ({"title": "t", "views": True}, "Field type mismatch: views expected number"),
        ({"title": "t", "views": float("nan")}, "Field type mismatch: views expected number"),
        ({"title": "t", "featured": "yes"}, "Field type mismatch: featured expected boolean"),
        ({"title": "t", "category": "sports"}, "Field value out of range: category must be one of [news, blog]"),
        ({"title": "t", "tags": ["a", "z"]}, "Field value out of range: tags has invalid values [z]"),
    ],
)
def test_field_errors(payload, message):
    result = validate_payload(payload, SCHEMA)
    assert result.errors == [message]


def test_relations_are_not_type_checked_unless_multiple():
    assert validate_payload({"title": "t", "author": {"id": "x"}}, SCHEMA).valid
    assert validate_payload({"title": "t", "author": "x"}, SCHEMA).valid
    assert infer_expected_type({"kind": "relation", "multiple": True}) == "array"


def test_type_hints_win_over_kind():
    assert infer_expected_type({"kind": "text", "type": "Integer"}) == "number"
    assert infer_expected_type({"kind": "rich_editor"}) == "string"
    assert infer_expected_type({"kind": "media"}) is None


def test_allowed_values_sources():
    assert extract_allowed_values({"options": ["x", "y", "x", ""]}) == ["x", "y"]
    assert extract_allowed_values({"selectItems": [{"id": "i1"}, {"value": "v2"}]}) == ["i1", "v2"]
    assert extract_allowed_values({"selectItems": []}) == []


def test_no_schema_checks_shape_only():
    result = validate_payload({"anything": 1})
    assert result.valid
    assert result.warnings == []


def test_strictness():
    result = validate_payload({"title": "t", "extra": 1}, SCHEMA)
    assert not result.fails()
    assert result.fails(strict_warnings=True)
