import pytest

from i18nsync.patterns import (
    build_pattern,
    dialect_patterns,
    extract_by_pattern,
    line_column,
    normalize_literal,
    parse_template,
)


@pytest.mark.parametrize(
    "template, expected",
    [
        ("{$t('Hello')} {$t('World')}", ["Hello", "World"]),
        ("{t('Message')}", ["Message"]),
        ("$t('Standalone')", ["Standalone"]),
        ("{{ $t('Vue style') }}", ["Vue style"]),
        ("<span v-t=\"'Directive'\"></span>", ["Directive"]),
        ("{#t 'Special syntax'}", ["Special syntax"]),
        ('{#t "Special double"}', ["Special double"]),
        ("{$t(`Backtick string`)}", ["Backtick string"]),
        ("{$t('Hello {name}', { values: { name } })}", ["Hello {name}"]),
        ("<div>No i18n here</div>", []),
        ("", []),
    ],
)
def test_parse_template(template: str, expected: list[str]) -> None:
    assert parse_template(template) == expected


def test_parse_template_deduplicates() -> None:
    assert parse_template("{$t('Same')} {$t('Same')} {$t('Same')}") == ["Same"]


def test_multiline_literal_is_flattened() -> None:
    result = parse_template("{$t('Multi\n        line\n        string')}")

    assert result == ["Multi line string"]


@pytest.mark.parametrize(
    "template, expected",
    [
        ("{$t('It\\'s working')}", "It's working"),
        ('{$t("Say \\"Hello\\"")}', 'Say "Hello"'),
        ("{$t('Path: C:\\\\Users')}", "Path: C:\\Users"),
        ("{$t('Line1\\nLine2')}", "Line1 Line2"),
        ("{$t('Col1\\tCol2')}", "Col1\tCol2"),
    ],
)
def test_escaped_literals(template: str, expected: str) -> None:
    assert parse_template(template) == [expected]


def test_empty_keys_are_dropped() -> None:
    assert parse_template("{$t('')} {$t('   ')}") == []


def test_bare_name_needs_word_boundary() -> None:
    assert parse_template("format('No') at('No')") == []


def test_normalize_literal() -> None:
    assert normalize_literal("  a\\'b \n  c ") == "a'b c"


def test_build_pattern_prefix_and_suffix() -> None:
    pattern = build_pattern("$t", "'", r"\{\{\s*", r"\s*\}\}")

    assert pattern.search("{{ $t('x', { n: 1 }) }}").group(1) == "x"
    assert pattern.search("$t('x')") is None


def test_unknown_dialect() -> None:
    with pytest.raises(ValueError):
        dialect_patterns("angular", ("$t",))


def test_extract_by_pattern_positions() -> None:
    text = "<p>\n  {$t('Hello {name}')}\n</p>"
    items = extract_by_pattern(text, "a.svelte", "svelte")

    assert len(items) == 1
    assert items[0].key == "Hello {name}"
    assert (items[0].line, items[0].column) == (2, 3)
    assert items[0].has_params
    assert items[0].params == ("name",)


def test_extract_by_pattern_offsets_into_document() -> None:
    document = "line one\n<script>\nt('Inner')\n</script>"
    start = document.index("t('Inner')")
    items = extract_by_pattern("t('Inner')", "a.vue", "script", start=start, document=document)

    assert (items[0].line, items[0].column) == (3, 1)


def test_script_dialect_method_owners() -> None:
    items = extract_by_pattern("this.$t('A'); i18n.t('B')", "a.js", "script")

    assert [i.key for i in items] == ["A", "B"]


def test_line_column() -> None:
    assert line_column("ab\ncd", 0) == (1, 1)
    assert line_column("ab\ncd", 4) == (2, 2)
