"""Tests for upload path normalisation and data URI inlining."""

import base64

import pytest

from app.services.asset_resolver import (
    AssetResolver,
    decode_data_uri,
    file_name,
    mime_type_for,
    to_data_uri,
    upload_path_for,
)


class TestUploadPathFor:
    def test_root_relative_web_path(self, tmp_path):
        assert upload_path_for("/uploads/images/x.png", tmp_path) == tmp_path / "uploads" / "images" / "x.png"

    def test_path_containing_uploads_segment(self, tmp_path):
        assert upload_path_for("media/uploads/docs/y.gif", tmp_path) == tmp_path / "uploads" / "docs" / "y.gif"

    def test_bare_filename_goes_to_default_dir(self, tmp_path):
        assert upload_path_for("x.png", tmp_path) == tmp_path / "uploads" / "images" / "x.png"

    def test_custom_default_dir(self, tmp_path):
        assert upload_path_for("x.png", tmp_path, "uploads/files") == tmp_path / "uploads" / "files" / "x.png"

    def test_backslashes_normalised(self, tmp_path):
        assert upload_path_for("C:\\stuff\\x.png", tmp_path) == tmp_path / "uploads" / "images" / "x.png"
        assert upload_path_for("uploads\\images\\x.png", tmp_path) == tmp_path / "uploads" / "images" / "x.png"


class TestHelpers:
    @pytest.mark.parametrize("name, expected", [
        ("a.png", "image/png"),
        ("a.PNG", "image/png"),
        ("a.gif", "image/gif"),
        ("a.webp", "image/webp"),
        ("a.jpg", "image/jpeg"),
        ("a.jpeg", "image/jpeg"),
        ("a.bmp", "image/jpeg"),
        ("noext", "image/jpeg"),
    ])
    def test_mime_type_for(self, name, expected):
        assert mime_type_for(name) == expected

    def test_file_name(self):
        assert file_name("/uploads/images/cat.png") == "cat.png"
        assert file_name("a\\b\\c.png") == "c.png"

    def test_data_uri_round_trip(self):
        uri = to_data_uri(b"\x89PNG", "image/png")
        assert uri.startswith("data:image/png;base64,")
        assert decode_data_uri(uri) == b"\x89PNG"

    def test_decode_rejects_non_data_uri(self):
        assert decode_data_uri("") is None
        assert decode_data_uri("https://example.com/x.png") is None


class TestAssetResolver:
    def test_existing_file_is_inlined(self, public_root):
        result = AssetResolver(public_root).resolve("/uploads/images/cover.png")
        assert result.ok
        assert result.error is None
        assert result.data_uri.startswith("data:image/png;base64,")
        raw = (public_root / "uploads" / "images" / "cover.png").read_bytes()
        assert base64.b64decode(result.data_uri.split(",", 1)[1]) == raw

    def test_bare_filename_resolves_against_default_dir(self, public_root):
        result = AssetResolver(public_root).resolve("sample.jpg")
        assert result.ok
        assert result.data_uri.startswith("data:image/jpeg;base64,")

    def test_missing_file_is_reported(self, public_root):
        result = AssetResolver(public_root).resolve("/uploads/images/gone.png")
        assert not result.ok
        assert result.error == "file does not exist"
        assert result.filename == "gone.png"

    def test_empty_reference(self, public_root):
        assert not AssetResolver(public_root).resolve("").ok
        assert not AssetResolver(public_root).resolve(None).ok

    def test_oversized_file_is_refused(self, public_root):
        result = AssetResolver(public_root, max_bytes=10).resolve("/uploads/images/cover.png")
        assert not result.ok
        assert result.error.startswith("larger than")

    def test_path_outside_root_is_refused(self, public_root):
        (public_root.parent / "secret.png").write_bytes(b"secret")
        result = AssetResolver(public_root).resolve("/../secret.png")
        assert not result.ok
        assert result.error == "outside public root"

    def test_directory_is_not_a_file(self, public_root):
        result = AssetResolver(public_root).resolve("/uploads/images")
        assert not result.ok
