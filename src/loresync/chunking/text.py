"""Text splitting for markdown, prose, and code that failed to parse."""

from __future__ import annotations

import re

from loresync.chunking._base import ChunkType, Piece, TextSpan

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^\s*(`{3,}|~{3,})")
_LIST_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
_TABLE_RE = re.compile(r"^\s*\|")
_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])[\"')\]]*\s+")


def _starts_block(line: str) -> bool:
    return bool(
        _HEADING_RE.match(line) or _FENCE_RE.match(line) or _LIST_RE.match(line) or _TABLE_RE.match(line)
    )


def _sentences(paragraph: str, first_line: int, headings: tuple[str, ...]) -> list[Piece]:
    """Split a paragraph into sentence pieces, tracking the line each one starts on."""
    pieces: list[Piece] = []
    start = 0
    bounds = [m.end() for m in _SENTENCE_BREAK_RE.finditer(paragraph)]
    for end in [*bounds, len(paragraph)]:
        raw = paragraph[start:end]
        sentence = " ".join(raw.split())
        if sentence:
            offset = start + (len(raw) - len(raw.lstrip()))
            line_start = first_line + paragraph.count("\n", 0, offset)
            line_end = first_line + paragraph.count("\n", 0, max(end - 1, offset))
            pieces.append(Piece(sentence, ChunkType.SENTENCE, TextSpan(headings, line_start, line_end)))
        start = end
    return pieces


def split_text(content: str) -> list[Piece]:
    """Split markdown or prose into block and sentence pieces.

    Frontmatter, headings, fenced code, lists and tables become one piece
    each; everything else is a paragraph split into sentences.
    """
    lines = content.splitlines()
    pieces: list[Piece] = []
    headings: list[tuple[int, str]] = []
    i = 0

    def heading_path() -> tuple[str, ...]:
        return tuple(title for _, title in headings)

    if lines and lines[0].strip() == "---":
        for j in range(1, len(lines)):
            if lines[j].strip() == "---":
                block = "\n".join(lines[: j + 1])
                pieces.append(Piece(block, ChunkType.FRONTMATTER, TextSpan((), 1, j + 1)))
                i = j + 1
                break

    while i < len(lines):
        line = lines[i]
        if not line.strip():
            i += 1
            continue

        if heading := _HEADING_RE.match(line):
            level, title = len(heading.group(1)), heading.group(2)
            while headings and headings[-1][0] >= level:
                headings.pop()
            headings.append((level, title))
            pieces.append(Piece(line.strip(), ChunkType.HEADING, TextSpan(heading_path(), i + 1, i + 1)))
            i += 1
            continue

        if fence := _FENCE_RE.match(line):
            marker = fence.group(1)
            j = i + 1
            while j < len(lines) and not lines[j].strip().startswith(marker):
                j += 1
            end = min(j, len(lines) - 1)
            block = "\n".join(lines[i : end + 1])
            pieces.append(Piece(block, ChunkType.CODE_BLOCK, TextSpan(heading_path(), i + 1, end + 1)))
            i = end + 1
            continue

        if _TABLE_RE.match(line):
            j = i
            while j < len(lines) and _TABLE_RE.match(lines[j]):
                j += 1
            block = "\n".join(lines[i:j])
            pieces.append(Piece(block, ChunkType.TABLE, TextSpan(heading_path(), i + 1, j)))
            i = j
            continue

        if _LIST_RE.match(line):
            j = i + 1
            # Indented continuation lines stay with the list
            while j < len(lines) and lines[j].strip() and (
                _LIST_RE.match(lines[j]) or lines[j][:1].isspace()
            ):
                j += 1
            block = "\n".join(lines[i:j]).strip("\n")
            pieces.append(Piece(block, ChunkType.LIST, TextSpan(heading_path(), i + 1, j)))
            i = j
            continue

        j = i + 1
        while j < len(lines) and lines[j].strip() and not _starts_block(lines[j]):
            j += 1
        paragraph = "\n".join(lines[i:j])
        pieces.extend(_sentences(paragraph, i + 1, heading_path()))
        i = j

    return pieces


def split_blocks(content: str) -> list[Piece]:
    """Blank-line separated blocks; the fallback for code that did not parse."""
    lines = content.splitlines()
    pieces: list[Piece] = []
    i = 0
    while i < len(lines):
        if not lines[i].strip():
            i += 1
            continue
        j = i
        while j < len(lines) and lines[j].strip():
            j += 1
        pieces.append(Piece("\n".join(lines[i:j]), ChunkType.BLOCK, TextSpan((), i + 1, j)))
        i = j
    return pieces


def empty_piece(content: str) -> Piece:
    """The single piece produced for blank input."""
    return Piece(content, ChunkType.EMPTY, TextSpan((), 1, max(1, len(content.splitlines()))))
