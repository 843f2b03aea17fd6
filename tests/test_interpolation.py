from pathlib import Path

import pytest

from dotenvpp.errors import (
    CircularReference,
    InterpolationError,
    InvalidSyntax,
    MissingRequiredVariable,
)
from dotenvpp.interpolation import (
    Expansion,
    ExpansionMode,
    LoadedEntry,
    Resolver,
    is_valid_var_name,
    merge_entries,
    parse_expansion,
    resolve_entries,
    take_expansion,
)
from dotenvpp.parser import EnvPair, parse


def _resolve(text, environ=None):
    return resolve_entries(merge_entries([(None, parse(text))]), environ or {})


def test_interpolates_nested_values():
    text = "\nHOST=localhost\nPORT=8080\nBASE_URL=http://${HOST}:${PORT}\nUSERS_URL=${BASE_URL}/users\n"
    pairs = _resolve(text)
    assert len(pairs) == 4
    assert pairs[2].value == "http://localhost:8080"
    assert pairs[3].value == "http://localhost:8080/users"


def test_shell_style_parameter_variants():
    text = (
        "\nSET=hello\nEMPTY=\nDEFAULT=${MISSING:-fallback}\n"
        "DEFAULT_UNSET_ONLY=${EMPTY-fallback}\nALT_SET=${SET:+present}\n"
        "ALT_EMPTY=${EMPTY:+present}\nALT_UNSET_ONLY=${EMPTY+present}\n"
        "NESTED=${MISSING:-${SET}-world}\nPRICE=$$5\nMISSING=${NOT_SET}\n"
    )
    values = [pair.value for pair in _resolve(text)]
    assert values[2:] == ["fallback", "", "present", "", "present", "hello-world", "$5", ""]


def test_environment_used_as_fallback():
    pairs = _resolve("VALUE=${DOTENVPP_FALLBACK}\n", {"DOTENVPP_FALLBACK": "from_process"})
    assert pairs[0].value == "from_process"


def test_process_environment_is_default(monkeypatch):
    monkeypatch.setenv("DOTENVPP_INTERP_DEFAULT", "from_os")
    entries = merge_entries([(None, parse("VALUE=${DOTENVPP_INTERP_DEFAULT}\n"))])
    assert resolve_entries(entries)[0].value == "from_os"


def test_entries_take_precedence_over_environment():
    pairs = _resolve("NAME=file\nVALUE=${NAME}\n", {"NAME": "env"})
    assert pairs[1].value == "file"


def test_required_operator_reports_message():
    with pytest.raises(InterpolationError) as info:
        _resolve("API_KEY=${MISSING:?set API_KEY before boot}\n")
    err = info.value
    assert err.key == "API_KEY"
    assert err.line == 1
    assert err.kind == MissingRequiredVariable("MISSING", "set API_KEY before boot")


def test_required_operator_without_message_display():
    with pytest.raises(InterpolationError) as info:
        _resolve("API_KEY=${MISSING:?}\n")
    err = info.value
    assert err.kind == MissingRequiredVariable("MISSING", "")
    rendered = str(err)
    assert rendered.count("variable `MISSING` is required") == 1
    assert rendered == "interpolation error: line 1 for key `API_KEY`: variable `MISSING` is required"


def test_required_message_is_interpolated():
    with pytest.raises(InterpolationError) as info:
        _resolve("WHO=admin\nA=${NOPE:?ask ${WHO}}\n")
    assert info.value.kind.message == "ask admin"


def test_detects_circular_references():
    with pytest.raises(InterpolationError) as info:
        _resolve("A=${B}\nB=${C}\nC=${A}\n")
    assert info.value.kind == CircularReference(("A", "B", "C", "A"))


def test_self_reference_is_cycle():
    with pytest.raises(InterpolationError) as info:
        _resolve("A=${A}\n")
    assert info.value.kind.cycle == ("A", "A")


def test_shadowed_duplicate_does_not_trigger_cycle():
    pairs = _resolve("A=${A}\nA=stable\nB=${A}\n")
    assert [(p.key, p.value) for p in pairs] == [("A", "stable"), ("B", "stable")]


def test_reports_invalid_interpolation_syntax():
    with pytest.raises(InterpolationError) as info:
        _resolve("VALUE=${1BAD}\n")
    err = info.value
    assert err.key == "VALUE"
    assert err.line == 1
    assert err.kind == InvalidSyntax("1BAD", "variable name is invalid")


def test_reports_unclosed_interpolation_against_current_key():
    with pytest.raises(InterpolationError) as info:
        _resolve("VALUE=${MISSING\n")
    err = info.value
    assert err.key == "VALUE"
    assert err.line == 1
    assert err.kind.reason == "missing closing `}`"


def test_default_without_colon_only_triggers_when_unset():
    pairs = _resolve("VAL=\nA=${VAL-fallback}\nB=${NOPE-fallback}\n")
    assert pairs[1].value == ""
    assert pairs[2].value == "fallback"


def test_alternative_without_colon_triggers_when_set_even_if_empty():
    pairs = _resolve("VAL=\nA=${VAL+yes}\nB=${NOPE+yes}\n")
    assert pairs[1].value == "yes"
    assert pairs[2].value == ""


def test_required_without_colon_passes_when_empty():
    pairs = _resolve("VAL=\nA=${VAL?must exist}\n")
    assert pairs[1].value == ""


def test_required_without_colon_errors_when_unset():
    with pytest.raises(InterpolationError) as info:
        _resolve("A=${NOPE?var is required}\n")
    assert "var is required" in str(info.value)


def test_error_carries_source_path():
    entries = [LoadedEntry("DB_URL", "${DB_PASS:?set it}", 5, Path(".env.production"))]
    with pytest.raises(InterpolationError) as info:
        resolve_entries(entries, {})
    assert info.value.source == Path(".env.production")
    assert ".env.production:5" in str(info.value)


def test_resolver_resolve_all_returns_pairs():
    entries = [LoadedEntry("A", "x", 1), LoadedEntry("B", "${A}y", 2)]
    assert Resolver(entries, {}).resolve_all() == [EnvPair("A", "x", 1), EnvPair("B", "xy", 2)]


def test_merge_entries_later_group_replaces_in_place():
    first = parse("A=1\nB=2\n")
    second = parse("C=3\nA=4\n")
    merged = merge_entries([(Path("base"), first), (Path("local"), second)])
    assert [(e.key, e.raw_value, e.line, e.source) for e in merged] == [
        ("A", "4", 2, Path("local")),
        ("B", "2", 2, Path("base")),
        ("C", "3", 1, Path("local")),
    ]


def test_take_expansion_handles_nesting():
    assert take_expansion("${A:-${B}}x", 0) == ("A:-${B}", 10)
    assert take_expansion("ab${C}", 2) == ("C", 6)


def test_take_expansion_unclosed():
    with pytest.raises(ValueError, match="missing closing"):
        take_expansion("${A", 0)


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("A", Expansion("A", ExpansionMode.BASIC, "")),
        ("A:-x", Expansion("A", ExpansionMode.DEFAULT_IF_UNSET_OR_EMPTY, "x")),
        ("A:+x", Expansion("A", ExpansionMode.ALTERNATIVE_IF_SET_AND_NOT_EMPTY, "x")),
        ("A:?x", Expansion("A", ExpansionMode.REQUIRED_IF_UNSET_OR_EMPTY, "x")),
        ("A-x", Expansion("A", ExpansionMode.DEFAULT_IF_UNSET, "x")),
        ("A+x", Expansion("A", ExpansionMode.ALTERNATIVE_IF_SET, "x")),
        ("A?x", Expansion("A", ExpansionMode.REQUIRED_IF_UNSET, "x")),
        ("a.b_c", Expansion("a.b_c", ExpansionMode.BASIC, "")),
    ],
)
def test_parse_expansion(expression, expected):
    assert parse_expansion(expression) == expected


@pytest.mark.parametrize(
    "expression, reason",
    [
        ("", "variable name is empty"),
        ("1A", "variable name is invalid"),
        (":-x", "variable name is invalid"),
        ("A:x", "unsupported interpolation operator"),
        ("A:", "unsupported interpolation operator"),
    ],
)
def test_parse_expansion_errors(expression, reason):
    with pytest.raises(ValueError) as info:
        parse_expansion(expression)
    assert str(info.value) == reason


def test_unsupported_operator_reported_through_resolver():
    with pytest.raises(InterpolationError) as info:
        _resolve("A=${B:x}\n")
    assert info.value.kind == InvalidSyntax("B:x", "unsupported interpolation operator")


@pytest.mark.parametrize(
    "name, valid",
    [("A", True), ("_a", True), ("a.b9", True), ("", False), ("9a", False), (".a", False), ("a-b", False), ("é", False)],
)
def test_is_valid_var_name(name, valid):
    assert is_valid_var_name(name) is valid