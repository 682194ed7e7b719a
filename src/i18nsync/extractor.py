import asyncio
import fnmatch
import inspect
import logging
import pathlib
import re
from dataclasses import replace
from typing import Iterable

from i18nsync.classes import (
    DEFAULT_FUNCTION_NAMES,
    ExtractionItem,
    ExtractOptions,
    MergedExtractionItem,
    Occurrence,
    ProgressInfo,
)
from i18nsync.parser import ParseError, parse_javascript, parse_typescript
from i18nsync.patterns import extract_by_pattern
from i18nsync.plugins import FrameworkPlugin, PluginRegistry
from i18nsync.svelte import SveltePlugin
from i18nsync.vue import VuePlugin
from i18nsync.walker import extract_calls, item_from_call

logger = logging.getLogger(__name__)

TYPESCRIPT_EXTENSIONS = (".ts", ".tsx")
JAVASCRIPT_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs")

BRACE_RE = re.compile(r"\{([^{}]*)\}")


def _items_from_tree(tree, file: str, function_names: Iterable[str]) -> list[ExtractionItem]:
    items = []
    for call in extract_calls(tree, function_names):
        if not call.key:
            continue
        items.append(item_from_call(call, file, call.line or 1, call.column or 1))
    return items


def extract(
    code: str, file: str, options: ExtractOptions | None = None
) -> list[ExtractionItem]:
    options = options or ExtractOptions()
    try:
        result = parse_javascript(
            code, error_recovery=True, enable_jsx=file.endswith(".jsx"), file=file
        )
        if result.diagnostics and options.fallback_to_regex:
            logger.debug(f"{file}: {result.diagnostics[0].message}, using pattern extraction")
            return extract_by_pattern(code, file, "script", options.function_names)
        if result.tree is None:
            first = result.diagnostics[0]
            raise ParseError(first.message, file, first.line, first.column)
        return _items_from_tree(result.tree, file, options.function_names)
    except ParseError:
        if options.fallback_to_regex:
            return extract_by_pattern(code, file, "script", options.function_names)
        raise


def extract_from_typescript(
    code: str, file: str, options: ExtractOptions | None = None
) -> list[ExtractionItem]:
    options = options or ExtractOptions()
    try:
        tree = parse_typescript(code, enable_jsx=file.endswith(".tsx"), file=file)
    except ParseError as ex:
        logger.debug(f"TypeScript parsing failed for {ex}, retrying as JavaScript")
        return extract(code, file, replace(options, fallback_to_regex=True))
    return _items_from_tree(tree, file, options.function_names)


def extract_from_template(
    template: str, file: str, function_names: Iterable[str] = DEFAULT_FUNCTION_NAMES
) -> list[ExtractionItem]:
    return extract_by_pattern(template, file, "template", function_names)


class JavaScriptPlugin(FrameworkPlugin):
    name = "javascript"
    extensions = JAVASCRIPT_EXTENSIONS

    def __init__(self, options: ExtractOptions | None = None):
        self.options = options or ExtractOptions()

    async def extract(self, code: str, file: str) -> list[ExtractionItem]:
        return extract(code, file, self.options)

    def extract_sync(self, code: str, file: str) -> list[ExtractionItem]:
        return extract_by_pattern(code, file, "script", self.options.function_names)


class TypeScriptPlugin(JavaScriptPlugin):
    name = "typescript"
    extensions = TYPESCRIPT_EXTENSIONS

    async def extract(self, code: str, file: str) -> list[ExtractionItem]:
        return extract_from_typescript(code, file, self.options)


def default_registry(options: ExtractOptions | None = None) -> PluginRegistry:
    options = options or ExtractOptions()
    return PluginRegistry(
        [
            JavaScriptPlugin(options),
            TypeScriptPlugin(options),
            SveltePlugin(options.function_names),
            VuePlugin(options.function_names),
        ]
    )


async def extract_from_file(
    path: str | pathlib.Path,
    options: ExtractOptions | None = None,
    registry: PluginRegistry | None = None,
) -> list[ExtractionItem]:
    options = options or ExtractOptions()
    file = pathlib.Path(path)
    code = await asyncio.to_thread(file.read_text, "utf-8")
    ext = file.suffix

    plugin = registry.lookup(ext) if registry is not None else None
    if plugin is not None:
        items = plugin.extract(code, str(file))
        if inspect.isawaitable(items):
            items = await items
        return list(items)

    if ext in TYPESCRIPT_EXTENSIONS:
        return extract_from_typescript(code, str(file), options)
    if ext in JAVASCRIPT_EXTENSIONS:
        return extract(code, str(file), options)

    # Claimed by a plugin whose structural dependency is missing
    claimed = next((p for p in registry.list() if ext in p.extensions), None) if registry else None
    if claimed is not None:
        logger.debug(f"{claimed.name} unavailable, pattern extraction for {file}")
        return claimed.extract_sync(code, str(file))
    return []


def expand_braces(pattern: str) -> list[str]:
    m = BRACE_RE.search(pattern)
    if m is None:
        return [pattern]
    expanded = []
    for choice in m.group(1).split(","):
        expanded.extend(expand_braces(pattern[: m.start()] + choice + pattern[m.end() :]))
    return expanded


def is_excluded(relative: str, exclude: Iterable[str]) -> bool:
    return any(
        fnmatch.fnmatch(relative, pattern)
        for raw in exclude
        for pattern in expand_braces(raw)
    )


def is_hidden(relative: pathlib.PurePath) -> bool:
    return any(part.startswith(".") for part in relative.parts)


def names_hidden(pattern: str) -> bool:
    # Dot entries are only matched when the pattern spells them out
    return any(part.startswith(".") for part in pattern.split("/"))


def enumerate_files(
    root: str | pathlib.Path, include: str | Iterable[str], exclude: Iterable[str] = ()
) -> list[pathlib.Path]:
    root_path = pathlib.Path(root).resolve()
    includes = [include] if isinstance(include, str) else list(include)
    exclude = list(exclude)

    found: set[pathlib.Path] = set()
    for raw in includes:
        for pattern in expand_braces(raw):
            dotted = names_hidden(pattern)
            for file in root_path.glob(pattern):
                if not file.is_file():
                    continue
                relative = file.relative_to(root_path)
                if not dotted and is_hidden(relative):
                    continue
                if is_excluded(relative.as_posix(), exclude):
                    continue
                found.add(file)
    return sorted(found)


async def extract_from_directory(
    root: str | pathlib.Path,
    options: ExtractOptions | None = None,
    registry: PluginRegistry | None = None,
) -> list[ExtractionItem]:
    options = options or ExtractOptions()
    if registry is None:
        registry = default_registry(options)

    files = enumerate_files(root, options.include, options.exclude)
    logger.info(f"Extracting from {len(files)} files under {root}")

    results: list[ExtractionItem] = []
    for current, file in enumerate(files, 1):
        try:
            results.extend(await extract_from_file(file, options, registry))
        except Exception as ex:
            logger.error(f"Error processing {file}: {ex}")
        if options.on_progress is not None:
            options.on_progress(ProgressInfo(str(file), current, len(files)))

    logger.info(f"Found {len(results)} occurrences in {len(files)} files")
    return results


def merge_results(items: Iterable[ExtractionItem]) -> list[MergedExtractionItem]:
    merged: dict[str, MergedExtractionItem] = {}
    for item in items:
        entry = merged.get(item.key)
        if entry is None:
            entry = merged[item.key] = MergedExtractionItem(item.key)
        if item.has_params and not entry.has_params:
            entry.has_params = True
            entry.params = tuple(item.params)
        entry.occurrences.append(Occurrence(item.file, item.line, item.column))
    return list(merged.values())
