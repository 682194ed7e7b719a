import re
from typing import Iterator

from tree_sitter import Node

from i18nsync.plugins import ComponentPlugin, Region

# Leading keyword of a block or special tag, e.g. {#if ...}, {:else if ...}, {@html ...}
BLOCK_KEYWORD_RE = re.compile(rb"^\s*([#:/@][A-Za-z]+)(?:\s+if\b)?\s*")


class SveltePlugin(ComponentPlugin):
    name = "svelte"
    extensions = (".svelte",)
    grammar = "svelte"
    dialect = "svelte"

    def regions(self, root: Node, source: bytes) -> Iterator[Region]:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "script_element":
                region = self.script_region(node, source)
                if region is not None:
                    yield region
                continue
            if node.type == "style_element":
                continue

            if self._is_expression_tag(node, source):
                region = self._tag_region(node, source)
                if region is not None:
                    yield region
                continue

            stack.extend(reversed(node.children))

    @staticmethod
    def _is_expression_tag(node: Node, source: bytes) -> bool:
        # The innermost {...} node: nothing nested inside opens another tag
        if not node.is_named or node.end_byte - node.start_byte < 2:
            return False
        if source[node.start_byte : node.start_byte + 1] != b"{":
            return False
        if source[node.end_byte - 1 : node.end_byte] != b"}":
            return False
        return not any(
            source[c.start_byte : c.start_byte + 1] == b"{" for c in node.named_children
        )

    @staticmethod
    def _tag_region(node: Node, source: bytes) -> Region | None:
        start, end = node.start_byte + 1, node.end_byte - 1
        kind = "expression"
        keyword = BLOCK_KEYWORD_RE.match(source[start:end])
        if keyword:
            if keyword.group(1) == b"#t":
                kind = "literal"
            start += keyword.end()
        if not source[start:end].strip():
            return None
        return Region(kind, start, end)
