import re
from dataclasses import dataclass, field
from typing import Callable

PARAM_REGEX = re.compile(r"\{([^}]+)\}")

DEFAULT_FUNCTION_NAMES = ("$t", "t")
DEFAULT_INCLUDE = "**/*.{js,jsx,ts,tsx,mjs,cjs,svelte,vue}"
DEFAULT_EXCLUDE = (
    "node_modules/**",
    "dist/**",
    "build/**",
    ".svelte-kit/**",
    ".nuxt/**",
)


def params_from_key(key: str) -> tuple[str, ...]:
    params: list[str] = []
    for name in PARAM_REGEX.findall(key):
        if name not in params:
            params.append(name)
    return tuple(params)


@dataclass(frozen=True)
class ExtractionItem:
    key: str
    file: str
    line: int
    column: int
    has_params: bool = False
    params: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        key: str,
        file: str,
        line: int,
        column: int,
        declared_params: list[str] | tuple[str, ...] | None = None,
    ) -> "ExtractionItem":
        params = tuple(declared_params) if declared_params else params_from_key(key)
        return cls(key, file, line, column, bool(params), params)


@dataclass(frozen=True)
class Occurrence:
    file: str
    line: int
    column: int


@dataclass
class MergedExtractionItem:
    key: str
    occurrences: list[Occurrence] = field(default_factory=list)
    has_params: bool = False
    params: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProgressInfo:
    file: str
    current: int
    total: int


@dataclass
class ExtractOptions:
    include: str | list[str] = DEFAULT_INCLUDE
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    function_names: list[str] = field(
        default_factory=lambda: list(DEFAULT_FUNCTION_NAMES)
    )
    fallback_to_regex: bool = False
    on_progress: Callable[[ProgressInfo], None] | None = None


@dataclass
class UpdateOptions:
    flush: bool = False
    remove_untranslated: bool = False
    validate_params: bool = False
    return_stats: bool = False


@dataclass
class UpdateStats:
    added: int = 0
    removed: int = 0
    unchanged: int = 0
    total: int = 0


@dataclass
class ReconcileResult:
    result: dict[str, str]
    stats: UpdateStats


@dataclass(frozen=True)
class Coverage:
    total: int
    translated: int
    missing: int
    percentage: int


@dataclass(frozen=True)
class CatalogUpdate:
    file: str
    keys: int


@dataclass(frozen=True)
class Section:
    content: str
    start_offset: int
    end_offset: int
    content_offset: int = 0
    lang_hint: str | None = None


@dataclass(frozen=True)
class SfcSections:
    module_script: Section | None = None
    script: Section | None = None
    template: Section | None = None
    style: Section | None = None
