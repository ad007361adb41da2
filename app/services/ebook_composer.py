"""
ebook_composer.py

Lays out the fixed page sequence of an ebook export:

  Cover : cover image (or a notice), title, subtitle, "by {author}"
  TOC   : "About" (if present) + one line per prompt, estimated page numbers
  About : only when about text is present
  Prompt: one page per entry, in order
  Back  : thank-you title, message, generation date

The TOC page numbers assume every section fits on a single page (About is
page 3 when present, prompts follow one page apart). They are estimates,
not references resolved after layout.
"""

from __future__ import annotations

from datetime import datetime

from app.services.asset_resolver import AssetResolver, file_name
from app.services.ebook_layout import (
    BadgeRow,
    Divider,
    ExportConfig,
    ImageBlock,
    Page,
    PageKind,
    SampleBox,
    TextBlock,
    TocLine,
)
from app.services.ebook_projection import EbookDocument, ImageSample, PromptSection, Sample
from app.services.text_normalizer import display_chunks, markdown_to_text, split_into_chunks

FIRST_CONTENT_PAGE = 3

COVER_IMAGE_MAX = (200, 200)
SAMPLE_IMAGE_MAX = (300, 200)

COVER_IMAGE_UNAVAILABLE = "Cover image unavailable"


def estimate_toc_pages(document: EbookDocument) -> tuple[int | None, list[int]]:
    """Return (about page, [page per prompt section]) under the one-page-per-section rule."""
    has_about = document.about_text is not None
    about_page = FIRST_CONTENT_PAGE if has_about else None
    first = FIRST_CONTENT_PAGE + (1 if has_about else 0)
    return about_page, [first + i for i in range(len(document.sections))]


def _chunk_blocks(text: str, max_length: int, style: str) -> list[TextBlock]:
    return [TextBlock(chunk, style) for chunk in display_chunks(split_into_chunks(text, max_length))]


def format_generated_on(generated_at: datetime) -> str:
    return f"Generated on {generated_at:%B} {generated_at.day}, {generated_at.year}"


# ── Pages ────────────────────────────────────────────────────────────────────

def compose_cover(document: EbookDocument, resolver: AssetResolver) -> Page:
    page = Page(PageKind.COVER)
    if document.cover_image:
        asset = resolver.resolve(document.cover_image)
        if asset.ok:
            page.add(ImageBlock(asset.data_uri, *COVER_IMAGE_MAX, fallback=COVER_IMAGE_UNAVAILABLE))
        else:
            page.add(TextBlock(COVER_IMAGE_UNAVAILABLE, "cover_notice"))
    page.add(TextBlock(document.title, "cover_title"))
    if document.subtitle:
        page.add(TextBlock(document.subtitle, "cover_subtitle"))
    if document.author:
        page.add(TextBlock(f"by {document.author}", "cover_author"))
    return page


def compose_toc(document: EbookDocument) -> Page:
    page = Page(PageKind.TOC, [TextBlock("Table of Contents", "toc_title")])
    about_page, prompt_pages = estimate_toc_pages(document)
    if about_page is not None:
        page.add(TocLine("About", about_page))
    for i, (section, pg) in enumerate(zip(document.sections, prompt_pages), start=1):
        page.add(TocLine(f"{i}. {section.title}", pg))
    return page


def compose_about(document: EbookDocument, config: ExportConfig) -> Page:
    page = Page(PageKind.ABOUT, [TextBlock("About", "section_title")])
    page.add(*_chunk_blocks(markdown_to_text(document.about_text), config.body_chunk_size, "about"))
    return page


def compose_sample(sample: Sample, resolver: AssetResolver, config: ExportConfig) -> SampleBox:
    blocks: list = []
    if sample.title:
        blocks.append(TextBlock(sample.title, "sample_title"))
    if sample.content:
        blocks.extend(_chunk_blocks(sample.content, config.sample_chunk_size, "sample_text"))

    if isinstance(sample, ImageSample) and sample.file_path:
        blocks.append(TextBlock(f"Image: {file_name(sample.file_path)}", "caption"))
        failed = f"Image could not be loaded: {sample.file_path}"
        asset = resolver.resolve(sample.file_path)
        if asset.ok:
            blocks.append(ImageBlock(asset.data_uri, *SAMPLE_IMAGE_MAX, fallback=failed))
        else:
            blocks.append(TextBlock(failed, "notice"))
    elif sample.file_path and not sample.content:
        blocks.append(TextBlock(f"Attachment: {file_name(sample.file_path)}", "caption"))

    return SampleBox(tuple(blocks))


def compose_prompt(
    document: EbookDocument,
    section: PromptSection,
    number: int,
    is_last: bool,
    resolver: AssetResolver,
    config: ExportConfig,
) -> Page:
    page = Page(PageKind.PROMPT, [TextBlock(f"Chapter {number}: {section.title}", "chapter_title")])

    if document.include_categories:
        page.add(BadgeRow((section.prompt_type,), "type_badge"))

    if document.include_tags and section.tags:
        page.add(BadgeRow(tuple(t.name for t in section.tags), "tag_badge"))

    if section.intro:
        page.add(TextBlock(section.intro, "intro"))

    if section.include_instructions and section.instructions:
        page.add(TextBlock("Instructions", "label"))
        page.add(*_chunk_blocks(markdown_to_text(section.instructions), config.body_chunk_size, "instructions"))

    # Prompt text is shown verbatim, only chunked
    page.add(TextBlock("Prompt", "label"))
    page.add(*_chunk_blocks(section.content, config.body_chunk_size, "prompt"))

    if section.include_samples and section.samples:
        page.add(TextBlock("Sample Outputs", "label"))
        for sample in section.samples:
            page.add(compose_sample(sample, resolver, config))

    if not is_last:
        page.add(Divider())
    return page


def compose_back(document: EbookDocument, generated_at: datetime) -> Page:
    page = Page(PageKind.BACK, [TextBlock(document.thank_you_title, "back_title")])
    if document.thank_you_message:
        page.add(TextBlock(markdown_to_text(document.thank_you_message), "back_message"))
    page.add(TextBlock(format_generated_on(generated_at), "back_footer"))
    return page


def compose_pages(
    document: EbookDocument,
    resolver: AssetResolver,
    generated_at: datetime,
    config: ExportConfig | None = None,
) -> list[Page]:
    """Build the full page plan. Same inputs and generated_at give an equal plan."""
    config = config or ExportConfig()
    log = config.logger

    pages = [compose_cover(document, resolver), compose_toc(document)]
    if document.about_text is not None:
        pages.append(compose_about(document, config))

    count = len(document.sections)
    for i, section in enumerate(document.sections):
        pages.append(compose_prompt(document, section, i + 1, i == count - 1, resolver, config))
        log.debug("Composed chapter %d/%d: %s", i + 1, count, section.title)

    pages.append(compose_back(document, generated_at))
    log.debug("Page plan for %r: %s", document.title, [p.kind.value for p in pages])
    return pages
