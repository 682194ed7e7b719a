import enum
import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

from tree_sitter import Node

from i18nsync.classes import DEFAULT_FUNCTION_NAMES, ExtractionItem
from i18nsync.parser import SyntaxTree


class CalleeKind(enum.Enum):
    IDENTIFIER = "identifier"
    MEMBER_TRAILING_PROPERTY = "member"


class ArgumentKind(enum.Enum):
    STRING = "string"
    TEMPLATE = "template"
    DYNAMIC_TEMPLATE = "dynamic_template"
    OBJECT = "object"
    CONDITIONAL = "conditional"
    OTHER = "other"


LITERAL_KINDS = (ArgumentKind.STRING, ArgumentKind.TEMPLATE)


@dataclass(frozen=True)
class TaggedArgument:
    kind: ArgumentKind
    value: str | None = None
    # Names of the nested `values` object, None when the object has none
    params: tuple[str, ...] | None = None
    branches: tuple["TaggedArgument", ...] = ()


@dataclass(frozen=True)
class CallSite:
    callee_kind: CalleeKind
    name: str
    arguments: list[TaggedArgument]
    offset: int = 0


@dataclass(frozen=True)
class I18nCall:
    name: str
    arguments: list[TaggedArgument] = field(default_factory=list)
    line: int | None = None
    column: int | None = None
    offset: int = 0

    @property
    def key(self) -> str:
        return self.arguments[0].value or ""

    @property
    def declared_params(self) -> tuple[str, ...] | None:
        if len(self.arguments) < 2 or self.arguments[1].kind != ArgumentKind.OBJECT:
            return None
        return self.arguments[1].params


_ESCAPE_REGEX = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "\n": "",
    "\r\n": "",
    "\u2028": "",
    "\u2029": "",
}


def _unescape_sequence(m: re.Match) -> str:
    seq = m.group(1)
    if seq in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[seq]
    if seq.startswith("u{"):
        return chr(int(seq[2:-1], 16))
    if len(seq) > 1 and seq[0] in "ux":
        return chr(int(seq[1:], 16))
    return seq


def cook_string(raw: str) -> str:
    return _ESCAPE_REGEX.sub(_unescape_sequence, raw)


def iter_nodes(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _unwrap(node: Node) -> Node:
    while node.type == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type != "comment"]
        if len(inner) != 1:
            break
        node = inner[0]
    return node


def _object_param_names(tree: SyntaxTree, node: Node) -> tuple[str, ...]:
    names: list[str] = []
    for child in node.named_children:
        if child.type == "shorthand_property_identifier":
            names.append(tree.text(child))
        elif child.type == "pair":
            key = child.child_by_field_name("key")
            if key is not None and key.type == "property_identifier":
                names.append(tree.text(key))
    return tuple(names)


def tag_argument(tree: SyntaxTree, node: Node) -> TaggedArgument:
    node = _unwrap(node)

    if node.type == "string":
        return TaggedArgument(ArgumentKind.STRING, cook_string(tree.text(node)[1:-1]))

    if node.type == "template_string":
        if any(c.type == "template_substitution" for c in node.children):
            return TaggedArgument(ArgumentKind.DYNAMIC_TEMPLATE)
        return TaggedArgument(ArgumentKind.TEMPLATE, tree.text(node)[1:-1])

    if node.type == "object":
        params = None
        for child in node.named_children:
            if child.type != "pair":
                continue
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            if (
                key is not None
                and key.type == "property_identifier"
                and tree.text(key) == "values"
                and value is not None
                and _unwrap(value).type == "object"
            ):
                params = _object_param_names(tree, _unwrap(value))
        return TaggedArgument(ArgumentKind.OBJECT, params=params)

    if node.type == "ternary_expression":
        branches = []
        for name in ("consequence", "alternative"):
            branch = node.child_by_field_name(name)
            if branch is not None:
                branches.append(tag_argument(tree, branch))
        return TaggedArgument(ArgumentKind.CONDITIONAL, branches=tuple(branches))

    return TaggedArgument(ArgumentKind.OTHER)


def normalize_call(tree: SyntaxTree, node: Node) -> CallSite | None:
    if node.type != "call_expression":
        return None
    callee = node.child_by_field_name("function")
    args = node.child_by_field_name("arguments")
    # Tagged templates carry a template_string instead of an argument list
    if callee is None or args is None or args.type != "arguments":
        return None

    callee = _unwrap(callee)
    if callee.type == "identifier":
        kind, name = CalleeKind.IDENTIFIER, tree.text(callee)
    elif callee.type == "member_expression":
        prop = callee.child_by_field_name("property")
        if prop is None or prop.type != "property_identifier":
            return None
        kind, name = CalleeKind.MEMBER_TRAILING_PROPERTY, tree.text(prop)
    else:
        return None

    arguments = [tag_argument(tree, a) for a in args.named_children if a.type != "comment"]
    return CallSite(kind, name, arguments, node.start_byte)


def classify(site: CallSite, function_names: Iterable[str]) -> list[list[TaggedArgument]]:
    """Return one argument list per qualifying call, first argument a literal."""
    if site.name not in function_names or not site.arguments:
        return []

    first, rest = site.arguments[0], site.arguments[1:]
    if first.kind in LITERAL_KINDS:
        return [[first, *rest]]
    if first.kind == ArgumentKind.CONDITIONAL:
        return [[branch, *rest] for branch in first.branches if branch.kind in LITERAL_KINDS]
    return []


def extract_calls(
    tree: SyntaxTree, function_names: Iterable[str] = DEFAULT_FUNCTION_NAMES
) -> list[I18nCall]:
    names = set(function_names)
    calls: list[I18nCall] = []
    for node in iter_nodes(tree.root_node):
        site = normalize_call(tree, node)
        if site is None:
            continue
        qualifying = classify(site, names)
        if not qualifying:
            continue
        line, column = tree.position(node)
        call = I18nCall(site.name, [], line, column, site.offset)
        calls.extend(replace(call, arguments=arguments) for arguments in qualifying)
    return calls


def literal_expression(tree: SyntaxTree) -> TaggedArgument | None:
    """Tag the expression of a source holding a single expression statement."""
    statements = [c for c in tree.root_node.named_children if c.type != "comment"]
    if len(statements) != 1 or statements[0].type != "expression_statement":
        return None
    expressions = [c for c in statements[0].named_children if c.type != "comment"]
    if not expressions:
        return None
    return tag_argument(tree, expressions[0])


def item_from_call(call: I18nCall, file: str, line: int, column: int) -> ExtractionItem:
    return ExtractionItem.create(call.key, file, line, column, call.declared_params)
