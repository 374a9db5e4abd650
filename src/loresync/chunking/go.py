"""GoSplitter: tree-sitter-based structural splitting."""

from __future__ import annotations

import tree_sitter
from tree_sitter_go import language as _go_language

from loresync.chunking._base import ChunkType, Piece, Span, SplitError, pieces_from_spans


class GoSplitter:
    """Splits Go source into functions, methods, and type/const/var declarations.

    The package clause and imports land in ``module`` pieces.
    """

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".go"})

    def split(self, path: str, content: str) -> list[Piece]:
        if not content.strip():
            return []
        parser = tree_sitter.Parser(tree_sitter.Language(_go_language()))
        tree = parser.parse(content.encode())
        root = tree.root_node
        if root.has_error:
            raise SplitError(f"go parse tree for {path} contains errors")

        spans: list[Span] = []
        for child in root.children:
            line_start = child.start_point.row + 1
            line_end = child.end_point.row + 1
            if child.type == "function_declaration":
                spans.append(Span(line_start, line_end, ChunkType.FUNCTION, _name(child)))
            elif child.type == "method_declaration":
                spans.append(Span(line_start, line_end, ChunkType.FUNCTION, _method_name(child)))
            elif child.type == "type_declaration":
                spans.append(Span(line_start, line_end, ChunkType.CLASS, _type_name(child)))
            elif child.type in ("const_declaration", "var_declaration"):
                spans.append(Span(line_start, line_end, ChunkType.DECLARATION, None))
        return pieces_from_spans(content, spans, "go")


def _name(node: tree_sitter.Node) -> str | None:
    name_node = node.child_by_field_name("name")
    if name_node is None or name_node.text is None:
        return None
    return name_node.text.decode()


def _method_name(node: tree_sitter.Node) -> str | None:
    """``Receiver.Method`` when the receiver type can be read."""
    name = _name(node)
    receiver = node.child_by_field_name("receiver")
    if name is None or receiver is None:
        return name
    for param in receiver.named_children:
        type_node = param.child_by_field_name("type")
        if type_node is None or type_node.text is None:
            continue
        return f"{type_node.text.decode().lstrip('*')}.{name}"
    return name


def _type_name(node: tree_sitter.Node) -> str | None:
    for child in node.named_children:
        if child.type in ("type_spec", "type_alias"):
            return _name(child)
    return None
