import functools
import logging
import re
from typing import Iterable, Pattern

from i18nsync.classes import DEFAULT_FUNCTION_NAMES, ExtractionItem

logger = logging.getLogger(__name__)

QUOTES = ("'", '"', "`")
METHOD_OWNERS = ("this", "i18n")

# Calling conventions understood by each dialect, in matching order
DIALECTS = {
    "script": ("method", "bare", "block"),
    "svelte": ("wrapped", "block", "method", "bare"),
    "vue": ("double_wrapped", "directive", "method", "bare"),
    "template": ("wrapped", "block", "double_wrapped", "directive", "method", "bare"),
}

_UNESCAPES = (
    ("\\'", "'"),
    ('\\"', '"'),
    ("\\`", "`"),
    ("\\n", "\n"),
    ("\\t", "\t"),
    ("\\r", "\r"),
    ("\\\\", "\\"),
)
_MULTILINE_SPACE = re.compile(r"\s*\n\s*")


def _literal(quote: str) -> str:
    # Any char but the quote or a backslash, or a backslash followed by any char
    q = re.escape(quote)
    return rf"{q}((?:[^{q}\\]|\\.)*){q}"


def build_pattern(name: str, quote: str, prefix: str = "", suffix: str = "") -> Pattern:
    boundary = r"\b" if not prefix and re.match(r"\w", name) else ""
    return re.compile(
        rf"{prefix}{boundary}{re.escape(name)}\(\s*{_literal(quote)}\s*(?:,[\s\S]*?)?\){suffix}"
    )


def build_block_pattern(quote: str) -> Pattern:
    return re.compile(rf"\{{#t\s+{_literal(quote)}\}}")


def build_directive_pattern(outer: str, inner: str) -> Pattern:
    return re.compile(rf"v-t={outer}{_literal(inner)}{outer}")


def _convention_patterns(convention: str, names: tuple[str, ...]) -> list[Pattern]:
    if convention == "block":
        return [build_block_pattern(q) for q in ("'", '"')]
    if convention == "directive":
        return [build_directive_pattern('"', "'"), build_directive_pattern("'", '"')]

    patterns = []
    for name in names:
        for quote in QUOTES:
            if convention == "wrapped":
                patterns.append(build_pattern(name, quote, r"\{", r"\}"))
            elif convention == "double_wrapped":
                patterns.append(build_pattern(name, quote, r"\{\{\s*", r"\s*\}\}"))
            elif convention == "method":
                for owner in METHOD_OWNERS:
                    patterns.append(build_pattern(name, quote, rf"\b{owner}\."))
            else:
                patterns.append(build_pattern(name, quote))
    return patterns


@functools.lru_cache(maxsize=None)
def dialect_patterns(dialect: str, names: tuple[str, ...]) -> tuple[Pattern, ...]:
    if dialect not in DIALECTS:
        raise ValueError(f"Unknown dialect {dialect!r}")
    patterns: list[Pattern] = []
    for convention in DIALECTS[dialect]:
        patterns.extend(_convention_patterns(convention, names))
    return tuple(patterns)


def normalize_literal(raw: str) -> str:
    text = raw
    for escaped, plain in _UNESCAPES:
        text = text.replace(escaped, plain)
    return _MULTILINE_SPACE.sub(" ", text).strip()


def _matches(
    text: str, dialect: str, function_names: Iterable[str]
) -> list[tuple[str, int]]:
    seen: set[str] = set()
    found: list[tuple[str, int]] = []
    for pattern in dialect_patterns(dialect, tuple(function_names)):
        for match in pattern.finditer(text):
            key = normalize_literal(match.group(1))
            if not key or key in seen:
                continue
            seen.add(key)
            found.append((key, match.start()))
    return found


def parse_template(
    text: str, function_names: Iterable[str] = DEFAULT_FUNCTION_NAMES
) -> list[str]:
    return [key for key, _ in _matches(text, "template", function_names)]


def line_column(text: str, index: int) -> tuple[int, int]:
    line_start = text.rfind("\n", 0, index) + 1
    return text.count("\n", 0, index) + 1, index - line_start + 1


def extract_by_pattern(
    text: str,
    file: str,
    dialect: str = "script",
    function_names: Iterable[str] = DEFAULT_FUNCTION_NAMES,
    start: int = 0,
    document: str | None = None,
) -> list[ExtractionItem]:
    """Regex extraction; positions are computed in `document` at `start` + match."""
    document = text if document is None else document
    items = []
    for key, index in _matches(text, dialect, function_names):
        line, column = line_column(document, start + index)
        items.append(ExtractionItem.create(key, file, line, column))
    logger.debug(f"Pattern extraction found {len(items)} keys in {file}")
    return items
