import abc
import asyncio
import enum
import functools
import importlib.util
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator

from tree_sitter import Node

from i18nsync.classes import DEFAULT_FUNCTION_NAMES, ExtractionItem, Section
from i18nsync.parser import parse, position_at
from i18nsync.patterns import extract_by_pattern, line_column
from i18nsync.sfc import mask_blocks, split_sections
from i18nsync.walker import LITERAL_KINDS, extract_calls, item_from_call, literal_expression

logger = logging.getLogger(__name__)

DIALECT_GRAMMARS_MODULE = "tree_sitter_language_pack"


class Capability(enum.Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


def probe_capability(module: str = DIALECT_GRAMMARS_MODULE) -> Capability:
    try:
        found = importlib.util.find_spec(module) is not None
    except (ImportError, ValueError):
        found = False
    return Capability.AVAILABLE if found else Capability.UNAVAILABLE


@functools.cache
def load_dialect_parser(grammar: str) -> Any:
    from tree_sitter_language_pack import get_parser

    return get_parser(grammar)


def dedupe_by_key(items: Iterable[ExtractionItem]) -> list[ExtractionItem]:
    seen: set[str] = set()
    unique = []
    for item in items:
        if item.key not in seen:
            seen.add(item.key)
            unique.append(item)
    return unique


class FrameworkPlugin(abc.ABC):
    name: str = ""
    extensions: tuple[str, ...] = ()

    @abc.abstractmethod
    async def extract(self, code: str, file: str) -> list[ExtractionItem]:
        ...

    def extract_sync(self, code: str, file: str) -> list[ExtractionItem]:
        """Regex-only extraction, no structural parse is attempted."""
        return extract_by_pattern(code, file, "template")

    def is_available(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} {list(self.extensions)}>"


class PluginRegistry:
    def __init__(self, plugins: Iterable[FrameworkPlugin] = ()):
        self._plugins: list[FrameworkPlugin] = []
        for plugin in plugins:
            self.register(plugin)

    def register(self, plugin: FrameworkPlugin) -> None:
        for index, existing in enumerate(self._plugins):
            if existing.name == plugin.name:
                self._plugins[index] = plugin
                return
        self._plugins.append(plugin)

    def unregister(self, name: str) -> None:
        self._plugins = [p for p in self._plugins if p.name != name]

    def list(self) -> list[FrameworkPlugin]:
        return list(self._plugins)

    def lookup(self, extension: str) -> FrameworkPlugin | None:
        return next(
            (
                p
                for p in self._plugins
                if extension in p.extensions and p.is_available()
            ),
            None,
        )


@dataclass(frozen=True)
class Region:
    """A byte range of a component holding code to hand to the JS/TS parser."""

    kind: str  # script, expression or literal
    start: int
    end: int
    ts: bool = False


class ComponentPlugin(FrameworkPlugin):
    grammar: str = ""
    dialect: str = "template"

    def __init__(
        self,
        function_names: Iterable[str] = DEFAULT_FUNCTION_NAMES,
        capability: Capability | None = None,
        parser_loader: Callable[[], Any] | None = None,
    ):
        self.function_names = tuple(function_names)
        self.capability = capability if capability is not None else probe_capability()
        self._parser_loader = parser_loader or functools.partial(
            load_dialect_parser, self.grammar
        )
        self._parser: Any = None
        self._load_failed = False

    def is_available(self) -> bool:
        return self.capability is Capability.AVAILABLE

    async def _load_parser(self) -> Any:
        if self._parser is None and not self._load_failed:
            try:
                self._parser = await asyncio.to_thread(self._parser_loader)
                self.capability = Capability.AVAILABLE
            except Exception as ex:
                # Grammar downloads can fail too, not only the import
                logger.debug(f"No {self.name} grammar, using fallback extraction: {ex}")
                self._load_failed = True
                self.capability = Capability.UNAVAILABLE
        return self._parser

    async def extract(self, code: str, file: str) -> list[ExtractionItem]:
        items: list[ExtractionItem] = []
        parser = await self._load_parser()
        if parser is not None:
            try:
                items = self._extract_structural(parser, code, file)
            except Exception as ex:
                logger.warning(f"Error parsing {self.name} file {file}: {ex}")
                items = []
        if not items:
            items = self._extract_fallback(code, file)
        return dedupe_by_key(items)

    def extract_sync(self, code: str, file: str) -> list[ExtractionItem]:
        """Regex-only extraction, no structural parse is attempted."""
        return extract_by_pattern(code, file, self.dialect, self.function_names)

    # Structural path

    @abc.abstractmethod
    def regions(self, root: Node, source: bytes) -> Iterator[Region]:
        ...

    def _extract_structural(self, parser: Any, code: str, file: str) -> list[ExtractionItem]:
        source = code.encode("utf-8")
        tree = parser.parse(source)
        items = []
        for region in self.regions(tree.root_node, source):
            items.extend(self._scan_region(region, source, file))
        return items

    def _scan_region(self, region: Region, source: bytes, file: str) -> list[ExtractionItem]:
        text = source[region.start : region.end].decode("utf-8", "replace")
        result = parse(text, treat_as_ts=region.ts, error_recovery=True)
        if result.tree is None:
            logger.debug(f"Skipping unparsable {region.kind} at byte {region.start} of {file}")
            return []

        if region.kind == "literal":
            literal = literal_expression(result.tree)
            if literal is None or literal.kind not in LITERAL_KINDS or not literal.value:
                return []
            line, column = position_at(source, region.start)
            return [ExtractionItem.create(literal.value, file, line, column)]

        items = []
        for call in extract_calls(result.tree, self.function_names):
            if not call.key:
                continue
            line, column = position_at(source, region.start + call.offset)
            items.append(item_from_call(call, file, line, column))
        return items

    @staticmethod
    def script_region(node: Node, source: bytes) -> Region | None:
        raw = next((c for c in node.named_children if c.type == "raw_text"), None)
        if raw is None:
            return None
        start_tag = next((c for c in node.named_children if c.type == "start_tag"), None)
        tag = source[start_tag.start_byte : start_tag.end_byte] if start_tag else b""
        ts = b'lang="ts"' in tag or b"lang='ts'" in tag
        return Region("script", raw.start_byte, raw.end_byte, ts)

    # Fallback path

    def _extract_fallback(self, code: str, file: str) -> list[ExtractionItem]:
        sections = split_sections(code)
        items = []
        for section in (sections.module_script, sections.script):
            if section is not None:
                items.extend(self._scan_script_section(section, code, file))
        if sections.template is not None:
            items.extend(
                extract_by_pattern(mask_blocks(code), file, self.dialect, self.function_names)
            )
        return items

    def _scan_script_section(
        self, section: Section, code: str, file: str
    ) -> list[ExtractionItem]:
        result = parse(section.content, treat_as_ts=section.lang_hint == "ts", error_recovery=True)
        if result.tree is None:
            return extract_by_pattern(
                section.content,
                file,
                "script",
                self.function_names,
                start=section.content_offset,
                document=code,
            )

        base_line, base_column = line_column(code, section.content_offset)
        items = []
        for call in extract_calls(result.tree, self.function_names):
            if not call.key:
                continue
            line, column = call.line or 1, call.column or 1
            if line == 1:
                column += base_column - 1
            items.append(item_from_call(call, file, base_line + line - 1, column))
        return items
