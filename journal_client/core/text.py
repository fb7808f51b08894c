"""Content helpers shared by the editor and the mutation layer."""

from __future__ import annotations

from typing import List

from markdown_it import MarkdownIt

_ESCAPED_NEWLINE = "\\n"

_md = MarkdownIt("commonmark")


def escape_newlines(text: str) -> str:
    """Encode real newlines as the two-character sequence used on the wire."""
    return text.replace("\r\n", "\n").replace("\n", _ESCAPED_NEWLINE)


def unescape_newlines(text: str) -> str:
    """Inverse of :func:`escape_newlines`, applied when content is loaded."""
    return text.replace(_ESCAPED_NEWLINE, "\n")


def strip_markdown(text: str) -> str:
    """Return the readable text of a markdown document, one block per line.

    Markup (heading markers, emphasis, link targets, list bullets) is
    dropped; text, inline code, code blocks and image alt text are kept.
    """
    parts: List[str] = []
    for token in _md.parse(text):
        if token.type == "inline":
            line: List[str] = []
            for child in token.children or []:
                if child.type in ("text", "code_inline", "image"):
                    line.append(child.content)
                elif child.type in ("softbreak", "hardbreak"):
                    line.append(" ")
            parts.append("".join(line))
        elif token.type in ("fence", "code_block"):
            parts.append(token.content)
    return "\n".join(parts)


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens of the markdown-stripped text."""
    return len(strip_markdown(text).split())


__all__ = ["escape_newlines", "unescape_newlines", "strip_markdown", "count_words"]
