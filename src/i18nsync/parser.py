import logging
from dataclasses import dataclass, field

from tree_sitter import Language, Node, Parser, Tree

logger = logging.getLogger(__name__)


class ParseError(Exception):
    def __init__(
        self,
        message: str,
        file: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ):
        self.message = message
        self.file = file
        self.line = line
        self.column = column
        location = ":".join(str(x) for x in (file, line, column) if x is not None)
        super().__init__(f"{location}: {message}" if location else message)


@dataclass(frozen=True)
class Diagnostic:
    message: str
    line: int
    column: int
    offset: int = 0
    # The error runs into the end of the input, nothing after it can be recovered
    fatal: bool = False


@dataclass(eq=False)
class SyntaxTree:
    tree: Tree
    source: bytes
    grammar: str

    @property
    def root_node(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", "replace")

    def position(self, node: Node) -> tuple[int, int]:
        return position_at(self.source, node.start_byte)


@dataclass
class ParseResult:
    tree: SyntaxTree | None
    diagnostics: list[Diagnostic] = field(default_factory=list)


# Loaded lazily, grammar name -> parser
_PARSERS: dict[str, Parser] = {}
_PARSE_CACHE: dict[tuple[str, str], SyntaxTree] = {}


def _load_language(grammar: str) -> Language:
    if grammar == "javascript":
        import tree_sitter_javascript

        return Language(tree_sitter_javascript.language())

    import tree_sitter_typescript

    if grammar == "tsx":
        return Language(tree_sitter_typescript.language_tsx())
    return Language(tree_sitter_typescript.language_typescript())


def _get_parser(grammar: str) -> Parser:
    parser = _PARSERS.get(grammar)
    if parser is None:
        logger.debug(f"Loading {grammar} grammar")
        parser = Parser(_load_language(grammar))
        _PARSERS[grammar] = parser
    return parser


def position_at(source: bytes, offset: int) -> tuple[int, int]:
    line_start = source.rfind(b"\n", 0, offset) + 1
    line = source.count(b"\n", 0, offset) + 1
    column = len(source[line_start:offset].decode("utf-8", "replace")) + 1
    return line, column


def _snippet(source: bytes, node: Node) -> str:
    text = source[node.start_byte : node.end_byte].decode("utf-8", "replace")
    text = " ".join(text.split())
    return text if len(text) <= 20 else text[:20] + "..."


def _collect_diagnostics(
    root: Node, source: bytes, grammar: str, enable_jsx: bool
) -> list[Diagnostic]:
    check_jsx = grammar == "javascript" and not enable_jsx
    content_end = len(source.rstrip())
    diagnostics: list[Diagnostic] = []

    def report(message: str, node: Node, fatal: bool = False) -> None:
        line, column = position_at(source, node.start_byte)
        diagnostics.append(Diagnostic(message, line, column, node.start_byte, fatal))

    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_missing:
            report(f'Missing "{node.type}"', node, node.end_byte >= content_end)
            continue
        if node.type == "ERROR":
            snippet = _snippet(source, node)
            message = f'Unexpected token "{snippet}"' if snippet else "Unexpected token"
            report(message, node, node.end_byte >= content_end)
            continue
        if check_jsx and node.type.startswith("jsx_"):
            report("JSX syntax is not enabled", node)
            continue
        if node.has_error or check_jsx:
            stack.extend(reversed(node.children))

    diagnostics.sort(key=lambda d: d.offset)
    return diagnostics


def parse(
    source: str,
    *,
    treat_as_ts: bool = False,
    enable_jsx: bool = False,
    error_recovery: bool = False,
    use_cache: bool = False,
    file: str | None = None,
) -> SyntaxTree | ParseResult:
    if treat_as_ts:
        grammar = "tsx" if enable_jsx else "typescript"
    else:
        grammar = "javascript"

    tree = _PARSE_CACHE.get((grammar, source)) if use_cache else None
    if tree is None:
        encoded = source.encode("utf-8")
        tree = SyntaxTree(_get_parser(grammar).parse(encoded), encoded, grammar)
        if use_cache:
            _PARSE_CACHE[(grammar, source)] = tree

    diagnostics = _collect_diagnostics(tree.root_node, tree.source, grammar, enable_jsx)

    if error_recovery:
        if any(d.fatal for d in diagnostics):
            return ParseResult(None, diagnostics)
        return ParseResult(tree, diagnostics)

    if diagnostics:
        first = diagnostics[0]
        raise ParseError(first.message, file, first.line, first.column)
    return tree


def parse_javascript(code: str, **options) -> SyntaxTree | ParseResult:
    return parse(code, treat_as_ts=False, **options)


def parse_typescript(code: str, **options) -> SyntaxTree | ParseResult:
    return parse(code, treat_as_ts=True, **options)


def clear_parse_cache() -> None:
    _PARSE_CACHE.clear()
