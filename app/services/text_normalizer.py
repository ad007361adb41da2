"""
text_normalizer.py

Turns the small markup dialect used in ebook text fields into plain text
for ReportLab, and splits long text into sentence-aligned chunks so that no
single Paragraph grows past what a page can hold.

Supported markup (display-only, lossy):
  **bold**      -> bold
  _italic_      -> italic
  > quote       -> • quote
  - item        -> • item
  1. item       -> 1. item
  ## heading    -> heading
"""

from __future__ import annotations

import re

BODY_CHUNK_SIZE = 1000
SAMPLE_CHUNK_SIZE = 500

SENTENCE_SEPARATOR = ". "
BULLET = "•"

_BOLD_RE     = re.compile(r"\*\*(.*?)\*\*")
_ITALIC_RE   = re.compile(r"_(.*?)_")
_QUOTE_RE    = re.compile(r"^> (.+)$", re.MULTILINE)
_LIST_RE     = re.compile(r"^- (.+)$", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^(\d+)\.\s+(.+)$", re.MULTILINE)
_HEADING_RE  = re.compile(r"^## (.+)$", re.MULTILINE)


def markdown_to_text(markdown: str | None) -> str:
    """Strip the markup dialect and return readable plain text."""
    if not markdown:
        return ""
    text = _BOLD_RE.sub(r"\1", markdown)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _QUOTE_RE.sub(rf"{BULLET} \1", text)
    text = _LIST_RE.sub(rf"{BULLET} \1", text)
    text = _NUMBERED_RE.sub(r"\1. \2", text)
    text = _HEADING_RE.sub(r"\1", text)
    return text.strip()


def split_into_chunks(text: str | None, max_length: int = BODY_CHUNK_SIZE) -> list[str]:
    """Greedily pack sentences into chunks of at most max_length characters.

    Sentences are delimited by ". " and the delimiter is not kept in the
    chunks, so ``". ".join(chunks) == text`` always holds. A single sentence
    longer than max_length becomes a chunk of its own; it is never cut.
    """
    if not text:
        return [""]

    chunks: list[str] = []
    current: list[str] = []
    current_len = 0

    for sentence in text.split(SENTENCE_SEPARATOR):
        added = len(sentence) + (len(SENTENCE_SEPARATOR) if current else 0)
        if current and current_len + added > max_length:
            chunks.append(SENTENCE_SEPARATOR.join(current))
            current = [sentence]
            current_len = len(sentence)
        else:
            current.append(sentence)
            current_len += added

    if current:
        chunks.append(SENTENCE_SEPARATOR.join(current))

    return chunks or [text]


def display_chunks(chunks: list[str]) -> list[str]:
    """Put back the full stop that splitting removed from every chunk but the last."""
    out = []
    last = len(chunks) - 1
    for i, chunk in enumerate(chunks):
        out.append(chunk + "." if i < last else chunk)
    return out
