"""PythonSplitter: stdlib ast-based structural splitting."""

from __future__ import annotations

import ast

from loresync.chunking._base import ChunkType, Piece, Span, SplitError, pieces_from_spans


class PythonSplitter:
    """Splits Python source into top-level functions, classes, and module gaps."""

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".py", ".pyi"})

    def split(self, path: str, content: str) -> list[Piece]:
        """Parse *content* as Python and emit one piece per top-level definition."""
        if not content.strip():
            return []
        try:
            tree = ast.parse(content, filename=path)
        except (SyntaxError, ValueError, RecursionError) as exc:
            raise SplitError(f"{type(exc).__name__}: {exc}") from exc

        spans: list[Span] = []
        for node in tree.body:
            if isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
                spans.append(self._span(node, ChunkType.FUNCTION))
            elif isinstance(node, ast.ClassDef):
                spans.append(self._span(node, ChunkType.CLASS))
        return pieces_from_spans(content, spans, "python")

    @staticmethod
    def _span(
        node: ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef,
        chunk_type: ChunkType,
    ) -> Span:
        # Decorators belong to the definition they wrap
        line_start = min([node.lineno, *(d.lineno for d in node.decorator_list)])
        line_end = node.end_lineno or node.lineno
        return Span(line_start, line_end, chunk_type, node.name)
