"""JavaScript / TypeScript splitters: tree-sitter-based structural splitting."""

from __future__ import annotations

import tree_sitter
from tree_sitter_javascript import language as _js_language
from tree_sitter_typescript import language_tsx as _tsx_language
from tree_sitter_typescript import language_typescript as _ts_language

from loresync.chunking._base import ChunkType, Piece, Span, SplitError, pieces_from_spans

_FUNCTION_NODES = frozenset({"function_declaration", "generator_function_declaration"})
_CLASS_NODES = frozenset({"class_declaration", "abstract_class_declaration"})
_TYPE_NODES = frozenset(
    {"interface_declaration", "type_alias_declaration", "enum_declaration", "module", "internal_module"}
)
_VARIABLE_NODES = frozenset({"lexical_declaration", "variable_declaration"})
_FUNCTION_VALUES = frozenset({"arrow_function", "function_expression", "function", "generator_function"})


class JavaScriptSplitter:
    """Splits JavaScript source into top-level declarations using tree-sitter."""

    language_name = "javascript"

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".js", ".jsx", ".mjs", ".cjs"})

    def _language(self, path: str) -> tree_sitter.Language:
        return tree_sitter.Language(_js_language())

    def split(self, path: str, content: str) -> list[Piece]:
        if not content.strip():
            return []
        parser = tree_sitter.Parser(self._language(path))
        tree = parser.parse(content.encode())
        root = tree.root_node
        if root.has_error:
            raise SplitError(f"{self.language_name} parse tree for {path} contains errors")
        return _pieces_from_tree(root, content, self.language_name)


class TypeScriptSplitter(JavaScriptSplitter):
    """Splits TypeScript source; the declaration nodes match JavaScript's plus types."""

    language_name = "typescript"

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".ts", ".tsx"})

    def _language(self, path: str) -> tree_sitter.Language:
        if path.lower().endswith(".tsx"):
            return tree_sitter.Language(_tsx_language())
        return tree_sitter.Language(_ts_language())


def _pieces_from_tree(root: tree_sitter.Node, content: str, language: str) -> list[Piece]:
    # tree-sitter points are byte-based but rows are line numbers, so spans stay line-accurate
    spans: list[Span] = []
    for child in root.children:
        classified = _classify(child)
        if classified is None:
            continue
        chunk_type, name = classified
        spans.append(Span(child.start_point.row + 1, child.end_point.row + 1, chunk_type, name))
    return pieces_from_spans(content, spans, language)


def _node_name(node: tree_sitter.Node) -> str | None:
    """Extract the name from a declaration node via the 'name' field."""
    name_node = node.child_by_field_name("name")
    if name_node and name_node.text is not None:
        return name_node.text.decode()
    return None


def _classify(node: tree_sitter.Node) -> tuple[ChunkType, str | None] | None:
    """Return the chunk type and symbol for a top-level node, or None for gap content."""
    if node.type == "export_statement":
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            return _classify(declaration)
        for child in node.named_children:
            if child.type in _CLASS_NODES | _FUNCTION_NODES:
                return _classify(child)
        return None
    if node.type in _FUNCTION_NODES:
        return ChunkType.FUNCTION, _node_name(node)
    if node.type in _CLASS_NODES:
        return ChunkType.CLASS, _node_name(node)
    if node.type in _TYPE_NODES:
        return ChunkType.DECLARATION, _node_name(node)
    if node.type in _VARIABLE_NODES:
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = _node_name(declarator)
            value = declarator.child_by_field_name("value")
            if value is not None and value.type in _FUNCTION_VALUES:
                return ChunkType.FUNCTION, name
            if value is not None and value.type == "class":
                return ChunkType.CLASS, name
            return ChunkType.DECLARATION, name
    return None
