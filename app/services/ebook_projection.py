"""
ebook_projection.py

Flattens a fully loaded EbookExport aggregate (export -> entries -> prompt ->
category / tags / sample outputs) into the render-ready EbookDocument the
composer consumes. Pure: no I/O, no session access beyond already-loaded
attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.core.exceptions import NotFoundException

DEFAULT_THANK_YOU_TITLE = "Thank You"


@dataclass(frozen=True)
class TagBadge:
    name: str
    color: str | None = None


# ── Sample outputs, one variant per output type ──────────────────────────────

@dataclass(frozen=True)
class TextSample:
    title: str | None
    content: str | None
    file_path: str | None = None
    output_type: str = field(default="TEXT", init=False)


@dataclass(frozen=True)
class ImageSample:
    title: str | None
    content: str | None
    file_path: str | None = None
    output_type: str = field(default="IMAGE", init=False)


@dataclass(frozen=True)
class FileSample:
    title: str | None
    content: str | None
    file_path: str | None = None
    output_type: str = field(default="FILE", init=False)


Sample = TextSample | ImageSample | FileSample

_SAMPLE_VARIANTS = {
    "TEXT": TextSample,
    "IMAGE": ImageSample,
    "FILE": FileSample,
}


@dataclass(frozen=True)
class PromptSection:
    entry_id: str
    order: int
    title: str
    intro: str | None
    content: str
    prompt_type: str
    instructions: str | None
    include_instructions: bool
    include_samples: bool
    tags: tuple[TagBadge, ...] = ()
    samples: tuple[Sample, ...] = ()


@dataclass(frozen=True)
class EbookDocument:
    id: str
    title: str
    subtitle: str | None
    author: str | None
    cover_image: str | None
    about_text: str | None
    include_categories: bool
    include_tags: bool
    thank_you_title: str
    thank_you_message: str | None
    sections: tuple[PromptSection, ...]


def _text(value) -> str | None:
    """Blank strings count as absent, like the falsy checks in the templates."""
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def _flag(value, default: bool) -> bool:
    return default if value is None else bool(value)


def project_sample(sample) -> Sample:
    variant = _SAMPLE_VARIANTS.get(str(sample.output_type or "TEXT").upper(), TextSample)
    return variant(
        title=_text(sample.title),
        content=_text(sample.content),
        file_path=_text(sample.file_path),
    )


def project_section(entry) -> PromptSection:
    prompt = entry.prompt
    include_samples = _flag(entry.include_samples, True)

    samples: tuple[Sample, ...] = ()
    if include_samples:
        samples = tuple(
            project_sample(s)
            for s in (prompt.sample_outputs or [])
            if s.include_in_export is not False
        )

    tags = tuple(
        TagBadge(name=pt.tag.name, color=pt.tag.color)
        for pt in (prompt.tags or [])
        if pt.tag is not None
    )

    return PromptSection(
        entry_id=str(entry.id),
        order=entry.order or 0,
        title=_text(entry.custom_title) or prompt.title,
        intro=_text(entry.custom_intro),
        content=prompt.content or "",
        prompt_type=str(prompt.prompt_type or ""),
        instructions=_text(prompt.instructions),
        include_instructions=_flag(entry.include_instructions, True),
        include_samples=include_samples,
        tags=tags,
        samples=samples,
    )


def project_ebook(ebook) -> EbookDocument:
    """Build the EbookDocument for an export, or raise NotFoundException.

    Entries are sorted by ``order``; the sort is stable, so entries sharing
    an order keep the sequence they were loaded in.
    """
    if ebook is None:
        raise NotFoundException("Ebook not found")

    entries = sorted(ebook.prompts or [], key=lambda e: e.order or 0)
    sections = tuple(project_section(e) for e in entries)

    return EbookDocument(
        id=str(ebook.id),
        title=ebook.title,
        subtitle=_text(ebook.subtitle),
        author=_text(ebook.author),
        cover_image=_text(ebook.cover_image),
        about_text=_text(ebook.about_text),
        include_categories=_flag(ebook.include_categories, False),
        include_tags=_flag(ebook.include_tags, False),
        thank_you_title=_text(ebook.thank_you_title) or DEFAULT_THANK_YOU_TITLE,
        thank_you_message=_text(ebook.thank_you_message),
        sections=sections,
    )
