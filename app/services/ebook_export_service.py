"""
ebook_export_service.py

Server-side PDF (ReportLab Platypus) generation for prompt ebooks.

Pipeline:
  project_ebook    : ORM aggregate  -> EbookDocument        (ebook_projection)
  compose_pages    : EbookDocument  -> list[Page] of blocks (ebook_composer)
  render_pdf       : list[Page]     -> PDF bytes            (this module)

Page templates:
  cover   : full-bleed indigo background, white centred text
            (used for the cover and the thank-you page)
  content : running header with the ebook title, page number in the footer
            (numbered from the TOC: physical page - 1)

Typography:
  Font      : Helvetica family (configurable, TrueType fonts can be registered)
  Prompt    : Courier on a light panel, shown verbatim
  Margins   : 50 pt on all sides
  Images    : aspect-ratio preserved, never upscaled
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass
from datetime import datetime
from xml.sax.saxutils import escape as xml_escape

from PIL import Image as PILImage

# ── ReportLab ─────────────────────────────────────────────────────────────────
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import (
    BaseDocTemplate,
    Frame,
    HRFlowable,
    Image as RLImage,
    NextPageTemplate,
    PageBreak,
    PageTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)

from app.core.exceptions import EbookGenerationError
from app.services.asset_resolver import AssetResolver, decode_data_uri
from app.services.ebook_composer import compose_pages
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
from app.services.ebook_projection import project_ebook

# ── Geometry constants ────────────────────────────────────────────────────────
PAGE_W, PAGE_H = A4               # 595.28 pt × 841.89 pt
MARGIN = 50                       # pt
CONTENT_W = PAGE_W - 2 * MARGIN
HEADER_H = 30                     # room for the running header

COVER_BG = colors.HexColor("#4f46e5")
MUTED = colors.HexColor("#6b7280")
RULE = colors.HexColor("#e5e7eb")

PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class ExportArtifact:
    content: bytes
    filename: str
    media_type: str = PDF_MEDIA_TYPE


# ─────────────────────────────────────────────────────────────────────────────
# Shared helpers
# ─────────────────────────────────────────────────────────────────────────────

def safe_filename(title: str) -> str:
    """'My Prompts: Vol. 2' -> 'my-prompts-vol-2'."""
    cleaned = re.sub(r"[^a-zA-Z0-9\s-]", "", title or "")
    slug = re.sub(r"\s+", "-", cleaned.strip()).lower()
    return slug or "ebook"


def _pdf_text(value: object) -> str:
    """Escape dynamic text for ReportLab Paragraph XML parser."""
    return xml_escape("" if value is None else str(value))


def _markup(value: object) -> str:
    """Escaped text with hard line breaks kept."""
    return _pdf_text(value).replace("\r\n", "\n").replace("\n", "<br/>")


def register_fonts(font_files: dict[str, str]) -> None:
    """Register TrueType fonts with ReportLab, skipping names already known."""
    known = set(pdfmetrics.getRegisteredFontNames())
    for name, path in font_files.items():
        if name not in known:
            pdfmetrics.registerFont(TTFont(name, path))


# ─────────────────────────────────────────────────────────────────────────────
# PDF  (ReportLab Platypus)
# ─────────────────────────────────────────────────────────────────────────────

def _rl_image(data_uri: str, max_w: float, max_h: float) -> RLImage | None:
    """Build a centred ReportLab Image flowable, scaled to fit max_w × max_h (pts)."""
    raw = decode_data_uri(data_uri)
    if not raw:
        return None
    try:
        buf = io.BytesIO(raw)
        pil = PILImage.open(buf)
        pil.load()
        w, h = pil.size
        if not w or not h:
            return None
        scale = min(max_w / w, max_h / h, 1.0)
        buf.seek(0)
        img = RLImage(buf, width=w * scale, height=h * scale)
        img.hAlign = "CENTER"
        return img
    except (OSError, ValueError, SyntaxError, PILImage.DecompressionBombError):
        # PIL signals undecodable or oversized payloads with any of these
        return None


def _build_styles(config: ExportConfig) -> dict[str, ParagraphStyle]:
    def sty(
        name: str, *,
        bold: bool = False, italic: bool = False, mono: bool = False, size: int = 11,
        align: int = TA_LEFT, color: str = "#1f2937",
        before: int = 0, after: int = 8, left_indent: int = 0,
        leading: float | None = None, back: str | None = None,
    ) -> ParagraphStyle:
        if mono:
            fn = config.font_mono
        elif bold:
            fn = config.font_bold
        elif italic:
            fn = config.font_italic
        else:
            fn = config.font_regular
        return ParagraphStyle(
            name,
            fontName=fn,
            fontSize=size,
            leading=leading if leading is not None else size * 1.5,
            alignment=align,
            spaceBefore=before,
            spaceAfter=after,
            textColor=colors.HexColor(color),
            leftIndent=left_indent,
            backColor=colors.HexColor(back) if back else None,
            borderPadding=6 if back else 0,
        )

    return {
        "cover_title":    sty("ct",  bold=True,   size=36, align=TA_CENTER, color="#ffffff", after=30, leading=43),
        "cover_subtitle": sty("cs",               size=18, align=TA_CENTER, color="#e0e7ff", after=40),
        "cover_author":   sty("ca",               size=14, align=TA_CENTER, color="#c7d2fe", before=60),
        "cover_notice":   sty("cn",  italic=True, size=12, align=TA_CENTER, color="#c7d2fe", after=30),
        "toc_title":      sty("tt",  bold=True,   size=20, align=TA_CENTER, after=20),
        "toc_entry":      sty("te",               size=11, color="#374151", leading=18),
        "toc_pg":         sty("tp",               size=11, align=TA_RIGHT, color="#374151", leading=18),
        "dots":           ParagraphStyle(
                              "dots", fontName=config.font_regular, fontSize=10, leading=18,
                              alignment=TA_CENTER, textColor=colors.HexColor("#d1d5db")),
        "section_title":  sty("st",  bold=True,   size=24, align=TA_CENTER, after=20),
        "about":          sty("ab",               size=11, align=TA_JUSTIFY, color="#374151"),
        "chapter_title":  sty("cht", bold=True,   size=18, before=10, after=15, leading=24),
        "intro":          sty("in",  italic=True, size=12, color="#4f46e5", after=14, back="#f0f9ff"),
        "label":          sty("lb",  bold=True,   size=12, before=15, after=8),
        "instructions":   sty("ins",              size=11, color="#374151", after=12, back="#eff6ff"),
        "prompt":         sty("pr",  mono=True,   size=10, color="#111827", after=12, back="#f9fafb"),
        "sample_title":   sty("sot", bold=True,   size=10, after=5, left_indent=8),
        "sample_text":    sty("so",               size=10, color="#374151", after=6, left_indent=8, back="#f3f4f6"),
        "caption":        sty("cap",              size=9,  color="#6b7280", after=5, left_indent=8),
        "notice":         sty("no",  italic=True, size=9,  color="#ef4444", after=5, left_indent=8),
        "back_title":     sty("bt",  bold=True,   size=36, align=TA_CENTER, color="#ffffff", after=30, leading=43),
        "back_message":   sty("bm",               size=18, align=TA_CENTER, color="#e0e7ff", after=40),
        "back_footer":    sty("bf",               size=14, align=TA_CENTER, color="#c7d2fe", before=60),
    }


def _cover_page_cb(canvas, doc) -> None:
    """Full-bleed background for the cover and the thank-you page."""
    canvas.saveState()
    canvas.setFillColor(COVER_BG)
    canvas.rect(0, 0, PAGE_W, PAGE_H, stroke=0, fill=1)
    canvas.restoreState()


def _content_page_cb(title: str, config: ExportConfig):
    """Header/footer callback for content pages: ebook title on top, page number below."""

    def draw(canvas, doc) -> None:
        canvas.saveState()
        canvas.setFont(config.font_regular, 8)
        canvas.setFillColor(MUTED)
        canvas.drawCentredString(PAGE_W / 2, PAGE_H - MARGIN + 8, title)
        canvas.setStrokeColor(RULE)
        canvas.setLineWidth(1)
        canvas.line(MARGIN, PAGE_H - MARGIN, PAGE_W - MARGIN, PAGE_H - MARGIN)
        canvas.setFont(config.font_regular, 10)
        canvas.drawCentredString(PAGE_W / 2, 30, str(doc.page - 1))
        canvas.restoreState()

    return draw


def _badge_rows(row: BadgeRow, config: ExportConfig) -> list:
    """Lay badges out left to right, wrapping into as many rows as needed."""
    size = 9 if row.style == "tag_badge" else 10
    pad = 6
    widths = [stringWidth(label, config.font_regular, size) + 2 * pad for label in row.labels]

    lines: list[list[int]] = [[]]
    used = 0.0
    for i, w in enumerate(widths):
        if lines[-1] and used + w + 5 > CONTENT_W:
            lines.append([])
            used = 0.0
        lines[-1].append(i)
        used += w + 5

    out = []
    for idx in lines:
        tbl = Table(
            [[row.labels[i] for i in idx]],
            colWidths=[widths[i] for i in idx],
            hAlign="LEFT",
        )
        commands = [
            ("FONT",          (0, 0), (-1, -1), config.font_regular, size),
            ("TEXTCOLOR",     (0, 0), (-1, -1), MUTED),
            ("ALIGN",         (0, 0), (-1, -1), "CENTER"),
            ("TOPPADDING",    (0, 0), (-1, -1), 2),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ("LEFTPADDING",   (0, 0), (-1, -1), pad),
            ("RIGHTPADDING",  (0, 0), (-1, -1), pad),
        ]
        for col in range(len(idx)):
            commands.append(("BACKGROUND", (col, 0), (col, 0), colors.HexColor("#f3f4f6")))
        tbl.setStyle(TableStyle(commands))
        out += [tbl, Spacer(1, 4)]
    out.append(Spacer(1, 6))
    return out


def _toc_table(lines: list[TocLine], S: dict[str, ParagraphStyle]) -> Table:
    rows = [
        [
            Paragraph(_pdf_text(line.label), S["toc_entry"]),
            Paragraph("." * 50, S["dots"]),
            Paragraph(_pdf_text(line.page), S["toc_pg"]),
        ]
        for line in lines
    ]
    tbl = Table(rows, colWidths=[CONTENT_W * 0.62, CONTENT_W * 0.28, CONTENT_W * 0.10])
    tbl.setStyle(TableStyle([
        ("VALIGN",         (0, 0), (-1, -1), "BOTTOM"),
        ("TOPPADDING",     (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING",  (0, 0), (-1, -1), 2),
    ]))
    return tbl


def _flowables(blocks, S: dict[str, ParagraphStyle], config: ExportConfig) -> list:
    story: list = []
    toc: list[TocLine] = []

    for block in blocks:
        if isinstance(block, TocLine):
            toc.append(block)
            continue
        if toc:
            story.append(_toc_table(toc, S))
            toc = []

        if isinstance(block, TextBlock):
            story.append(Paragraph(_markup(block.text), S[block.style]))
        elif isinstance(block, BadgeRow):
            story += _badge_rows(block, config)
        elif isinstance(block, ImageBlock):
            img = _rl_image(block.data_uri, block.max_width, block.max_height)
            if img:
                story += [Spacer(1, 10), img, Spacer(1, 10)]
            else:
                config.logger.warning("Embedded image could not be decoded; rendering notice")
                story.append(Paragraph(_markup(block.fallback), S["notice"]))
        elif isinstance(block, SampleBox):
            story.append(Spacer(1, 4))
            story += _flowables(block.blocks, S, config)
            story.append(Spacer(1, 6))
        elif isinstance(block, Divider):
            story.append(HRFlowable(width=CONTENT_W, thickness=1, color=RULE, spaceBefore=20, spaceAfter=20))

    if toc:
        story.append(_toc_table(toc, S))
    return story


def render_pdf(
    pages: list[Page],
    title: str,
    author: str | None = None,
    config: ExportConfig | None = None,
) -> bytes:
    """Return raw PDF bytes for a composed page plan."""
    config = config or ExportConfig()
    register_fonts(config.font_files)
    S = _build_styles(config)

    buf = io.BytesIO()
    doc = BaseDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=title,
        author=author or "",
    )

    cover_frame = Frame(MARGIN, MARGIN, CONTENT_W, PAGE_H - 2 * MARGIN, id="cover_frame")
    content_frame = Frame(
        MARGIN, MARGIN, CONTENT_W, PAGE_H - 2 * MARGIN - HEADER_H, id="content_frame",
    )
    doc.addPageTemplates([
        PageTemplate(id="cover", frames=[cover_frame], onPage=_cover_page_cb),
        PageTemplate(id="content", frames=[content_frame], onPage=_content_page_cb(title, config)),
    ])

    story: list = []
    for i, page in enumerate(pages):
        on_cover = page.kind in (PageKind.COVER, PageKind.BACK)
        if i > 0:
            story.append(NextPageTemplate("cover" if on_cover else "content"))
            story.append(PageBreak())
        if on_cover:
            story.append(Spacer(1, 2.2 * 72))
        story += _flowables(page.blocks, S, config)

    doc.build(story)
    return buf.getvalue()


def generate_ebook_pdf(
    ebook,
    resolver: AssetResolver,
    config: ExportConfig | None = None,
    generated_at: datetime | None = None,
) -> ExportArtifact:
    """Project, compose and render an export.

    Raises NotFoundException when ``ebook`` is None, EbookGenerationError when
    composing or rendering fails. No partial artifact is ever returned.
    """
    config = config or ExportConfig()
    log = config.logger

    document = project_ebook(ebook)
    # Local server date, as printed on the back page
    generated_at = generated_at or datetime.now().astimezone()
    log.info("Starting PDF generation for %r (%d prompts)", document.title, len(document.sections))

    try:
        pages = compose_pages(document, resolver, generated_at, config)
        content = render_pdf(pages, document.title, document.author, config)
    except Exception as exc:
        log.exception("PDF generation failed for %r", document.title)
        raise EbookGenerationError(str(exc) or exc.__class__.__name__) from exc

    log.info("PDF generated for %r: %d pages planned, %d bytes", document.title, len(pages), len(content))
    return ExportArtifact(content=content, filename=f"{safe_filename(document.title)}.pdf")
