from docmerge.variables import (
    extract_variables,
    format_value,
    has_unresolved,
    substitute,
    validate_template,
)


def test_substitute_replaces_known_tokens():
    assert substitute("Hello {Name}!", {"Name": "Ada"}) == "Hello Ada!"


def test_substitute_keeps_unknown_and_none_tokens():
    row = {"Name": "Ada", "Email": None}
    assert substitute("{Name} <{Email}> {Phone}", row) == "Ada <{Email}> {Phone}"


def test_substitute_trims_token_names():
    assert substitute("{ Name }", {"Name": "Ada"}) == "Ada"


def test_substitute_is_single_pass():
    row = {"A": "{B}", "B": "nested"}
    assert substitute("{A}", row) == "{B}"


def test_substitute_leaves_empty_and_nested_braces():
    assert substitute("{} {{Name}}", {"Name": "x"}) == "{} {x}"


def test_format_value():
    assert format_value(True) == "true"
    assert format_value(False) == "false"
    assert format_value(3.0) == "3"
    assert format_value(2.5) == "2.5"
    assert format_value(7) == "7"


def test_substitute_zero_is_a_value():
    assert substitute("{Count}", {"Count": 0}) == "0"


def test_extract_variables_unique_in_order():
    assert extract_variables("{B} {A} {B} { A }") == ["B", "A"]


def test_has_unresolved():
    assert has_unresolved("x {Y} z")
    assert not has_unresolved("x y z")


def test_validate_template_reports_missing():
    result = validate_template("{Name} {Email} {Name}", ["Name", "City"])
    assert not result.is_valid
    assert result.missing_variables == ["Email"]


def test_validate_template_without_variables():
    result = validate_template("<p>plain</p>", [])
    assert result.is_valid
    assert result.missing_variables == []
