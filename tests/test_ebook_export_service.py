"""Tests for ReportLab rendering and the generate_ebook_pdf entry point."""

import logging
from datetime import date

import pytest
from PIL import Image as PILImage

from app.core.exceptions import EbookGenerationError, NotFoundException
from app.services.asset_resolver import AssetResolver
from app.services import ebook_export_service
from app.services.ebook_export_service import generate_ebook_pdf, render_pdf, safe_filename
from app.services.ebook_layout import ImageBlock, Page, PageKind, TextBlock


class TestSafeFilename:
    @pytest.mark.parametrize("title, expected", [
        ("Marketing Prompts", "marketing-prompts"),
        ("My Prompts: Vol. 2", "my-prompts-vol-2"),
        ("  spaced   out  ", "spaced-out"),
        ("already-dashed name", "already-dashed-name"),
        ("!!!", "ebook"),
        ("", "ebook"),
    ])
    def test_slug(self, title, expected):
        assert safe_filename(title) == expected


class TestRenderPdf:
    def test_renders_pdf_bytes(self, export_config):
        pages = [
            Page(PageKind.COVER, [TextBlock("Title", "cover_title")]),
            Page(PageKind.PROMPT, [TextBlock("Chapter 1: A <tag> & more", "chapter_title")]),
            Page(PageKind.BACK, [TextBlock("Thank You", "back_title")]),
        ]
        content = render_pdf(pages, "Title", config=export_config)
        assert content.startswith(b"%PDF")

    def test_undecodable_image_renders_notice(self, export_config, caplog):
        bogus = ImageBlock("data:image/png;base64,bm90IGFuIGltYWdl", 100, 100, fallback="Image could not be loaded: x.png")
        pages = [Page(PageKind.PROMPT, [bogus])]
        with caplog.at_level(logging.WARNING):
            content = render_pdf(pages, "Broken", config=export_config)
        assert content.startswith(b"%PDF")
        assert "could not be decoded" in caplog.text

    def test_image_over_pixel_limit_renders_notice(self, public_root, export_config, monkeypatch, caplog):
        # cover.png is 64x32; Pillow refuses anything over twice the limit outright
        monkeypatch.setattr(PILImage, "MAX_IMAGE_PIXELS", 500)
        uri = AssetResolver(public_root).resolve("/uploads/images/cover.png").data_uri
        pages = [Page(PageKind.PROMPT, [ImageBlock(uri, 300, 200, fallback="Image could not be loaded: cover.png")])]
        with caplog.at_level(logging.WARNING):
            content = render_pdf(pages, "Huge", config=export_config)
        assert content.startswith(b"%PDF")
        assert "could not be decoded" in caplog.text


class TestGenerateEbookPdf:
    def test_full_export(self, make_prompt, make_entry, make_ebook, resolver, export_config, generated_at):
        prompt = make_prompt(
            instructions="- step one\n- step two",
            tags=("seo",),
            samples=[
                {"title": "Text", "content": "Some output. More output.", "output_type": "TEXT"},
                {"title": "Hero", "output_type": "IMAGE", "file_path": "/uploads/images/sample.jpg"},
                {"title": "Gone", "output_type": "IMAGE", "file_path": "/uploads/images/gone.png"},
                {"title": "Corrupt", "output_type": "IMAGE", "file_path": "/uploads/images/broken.png"},
            ],
        )
        ebook = make_ebook(
            [make_entry(prompt, 0, custom_intro="Start here")],
            subtitle="Vol. 1",
            author="Ada",
            cover_image="/uploads/images/cover.png",
            about_text="## About\nA collection.",
            include_categories=True,
            include_tags=True,
            thank_you_message="Thanks for reading",
        )
        artifact = generate_ebook_pdf(ebook, resolver, export_config, generated_at)
        assert artifact.content.startswith(b"%PDF")
        assert artifact.filename == "marketing-prompts.pdf"
        assert artifact.media_type == "application/pdf"

    def test_missing_ebook_raises_not_found(self, resolver):
        with pytest.raises(NotFoundException):
            generate_ebook_pdf(None, resolver)

    def test_render_failure_becomes_generation_error(self, make_ebook, resolver, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("font missing")

        monkeypatch.setattr(ebook_export_service, "render_pdf", explode)
        with pytest.raises(EbookGenerationError, match="font missing"):
            generate_ebook_pdf(make_ebook(), resolver)

    def test_image_over_pixel_limit_does_not_abort_export(
        self, make_prompt, make_entry, make_ebook, resolver, export_config, generated_at, monkeypatch,
    ):
        monkeypatch.setattr(PILImage, "MAX_IMAGE_PIXELS", 500)
        prompt = make_prompt(samples=[
            {"title": "Huge", "output_type": "IMAGE", "file_path": "/uploads/images/cover.png"},
        ])
        ebook = make_ebook([make_entry(prompt, 0)], cover_image="/uploads/images/cover.png")
        artifact = generate_ebook_pdf(ebook, resolver, export_config, generated_at)
        assert artifact.content.startswith(b"%PDF")

    def test_generated_on_uses_local_date(self, make_ebook, resolver, monkeypatch):
        seen = {}
        real_compose = ebook_export_service.compose_pages

        def spy(document, resolver, generated_at, config):
            seen["generated_at"] = generated_at
            return real_compose(document, resolver, generated_at, config)

        monkeypatch.setattr(ebook_export_service, "compose_pages", spy)
        generate_ebook_pdf(make_ebook(), resolver)
        assert seen["generated_at"].tzinfo is not None
        assert seen["generated_at"].date() == date.today()
