"""
ebook_layout.py

Renderer-independent page plan for ebook exports, plus the explicit
configuration object handed to the composer and renderer.

A Page is an ordered list of blocks; the ReportLab renderer turns each
block into flowables and each Page into one (or more, when content
overflows) physical PDF pages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Union


class PageKind(str, Enum):
    COVER = "cover"
    TOC = "toc"
    ABOUT = "about"
    PROMPT = "prompt"
    BACK = "back"


@dataclass(frozen=True)
class TextBlock:
    text: str
    style: str  # key into the renderer's style sheet


@dataclass(frozen=True)
class BadgeRow:
    labels: tuple[str, ...]
    style: str  # "type_badge" | "tag_badge"


@dataclass(frozen=True)
class ImageBlock:
    data_uri: str
    max_width: float
    max_height: float
    fallback: str  # shown when the payload cannot be decoded as an image


@dataclass(frozen=True)
class TocLine:
    label: str
    page: int


@dataclass(frozen=True)
class SampleBox:
    blocks: tuple["Block", ...]


@dataclass(frozen=True)
class Divider:
    pass


Block = Union[TextBlock, BadgeRow, ImageBlock, TocLine, SampleBox, Divider]


@dataclass
class Page:
    kind: PageKind
    blocks: list[Block] = field(default_factory=list)

    def add(self, *blocks: Block) -> "Page":
        self.blocks.extend(blocks)
        return self

    def iter_blocks(self) -> Iterator[Block]:
        """Depth-first walk, descending into sample boxes."""
        stack = list(reversed(self.blocks))
        while stack:
            block = stack.pop()
            yield block
            if isinstance(block, SampleBox):
                stack.extend(reversed(block.blocks))

    def texts(self) -> list[str]:
        out = []
        for block in self.iter_blocks():
            if isinstance(block, TextBlock):
                out.append(block.text)
            elif isinstance(block, BadgeRow):
                out.extend(block.labels)
            elif isinstance(block, TocLine):
                out.append(block.label)
        return out


@dataclass
class ExportConfig:
    """Everything the composer and renderer need, passed in explicitly."""

    font_regular: str = "Helvetica"
    font_bold: str = "Helvetica-Bold"
    font_italic: str = "Helvetica-Oblique"
    font_mono: str = "Courier"
    # TrueType fonts to register before building: {font name: path to .ttf}
    font_files: dict[str, str] = field(default_factory=dict)
    body_chunk_size: int = 1000
    sample_chunk_size: int = 500
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("app.services.ebook_export"))

    @classmethod
    def from_settings(cls, settings) -> "ExportConfig":
        return cls(
            font_regular=settings.PDF_FONT_REGULAR,
            font_bold=settings.PDF_FONT_BOLD,
            font_italic=settings.PDF_FONT_ITALIC,
            font_mono=settings.PDF_FONT_MONO,
            font_files=settings.pdf_font_files,
            body_chunk_size=settings.PDF_BODY_CHUNK_SIZE,
            sample_chunk_size=settings.PDF_SAMPLE_CHUNK_SIZE,
        )
