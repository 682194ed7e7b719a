from typing import Iterator

from tree_sitter import Node

from i18nsync.plugins import ComponentPlugin, Region


def _first_descendant(node: Node, node_type: str) -> Node | None:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == node_type:
            return current
        stack.extend(reversed(current.children))
    return None


class VuePlugin(ComponentPlugin):
    name = "vue"
    extensions = (".vue",)
    grammar = "vue"
    dialect = "vue"

    def regions(self, root: Node, source: bytes) -> Iterator[Region]:
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "script_element":
                region = self.script_region(node, source)
                if region is not None:
                    yield region
            elif node.type == "interpolation":
                raw = _first_descendant(node, "raw_text")
                if raw is not None:
                    yield Region("expression", raw.start_byte, raw.end_byte)
                else:
                    yield Region("expression", node.start_byte + 2, node.end_byte - 2)
            elif node.type == "directive_attribute":
                region = self._directive_region(node, source)
                if region is not None:
                    yield region
            elif node.type != "style_element":
                stack.extend(reversed(node.children))

    @staticmethod
    def _directive_region(node: Node, source: bytes) -> Region | None:
        value = _first_descendant(node, "attribute_value")
        if value is None or value.start_byte == value.end_byte:
            return None
        name = _first_descendant(node, "directive_name")
        directive = source[name.start_byte : name.end_byte] if name is not None else b""
        kind = "literal" if directive == b"v-t" else "expression"
        return Region(kind, value.start_byte, value.end_byte)
