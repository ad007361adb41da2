"""
asset_resolver.py

Maps stored upload references (``/uploads/images/x.png``, ``uploads/images/x.png``
or a bare ``x.png``) to self-contained base64 data URIs for embedding in the
ebook PDF.

Path normalisation and MIME detection are pure; only AssetResolver.resolve
touches the filesystem. A missing or unreadable file is reported through
AssetResult, never raised, so one bad image cannot sink a whole export.
"""

from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

DEFAULT_ASSET_DIR = "uploads/images"
DEFAULT_MIME_TYPE = "image/jpeg"

MIME_TYPES = {
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}

_DATA_URI_RE = re.compile(r"data:([^;]+);base64,(.+)", re.DOTALL)


@dataclass(frozen=True)
class AssetResult:
    reference: str
    path: Path | None = None
    data_uri: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.data_uri is not None

    @property
    def filename(self) -> str:
        return file_name(self.reference)


def file_name(reference: str) -> str:
    """Last path segment of a stored reference, for captions."""
    return re.split(r"[\\/]", reference or "")[-1]


def upload_path_for(
    reference: str,
    public_root: str | Path,
    default_dir: str = DEFAULT_ASSET_DIR,
) -> Path:
    """Translate a stored file reference into a path under public_root.

    1. ``/uploads/images/x.png``  -> <root>/uploads/images/x.png
    2. ``media/uploads/x/y.gif``  -> <root>/uploads/x/y.gif
    3. anything else              -> <root>/<default_dir>/<last segment>
    """
    root = Path(public_root)
    ref = (reference or "").strip().replace("\\", "/")

    if ref.startswith("/"):
        return root.joinpath(*PurePosixPath(ref.lstrip("/")).parts)
    if "uploads/" in ref:
        return root.joinpath(*PurePosixPath(ref[ref.index("uploads/"):]).parts)
    return root.joinpath(*PurePosixPath(default_dir).parts, file_name(ref))


def mime_type_for(path: str | Path) -> str:
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def to_data_uri(raw: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(raw).decode('ascii')}"


def decode_data_uri(data_uri: str) -> bytes | None:
    """Return raw bytes from a base64 data URI, or None on failure."""
    if not data_uri:
        return None
    m = _DATA_URI_RE.match(data_uri)
    if not m:
        return None
    try:
        return base64.b64decode(m.group(2), validate=False)
    except ValueError:
        return None


class AssetResolver:
    """Reads upload files from the public root and inlines them as data URIs."""

    def __init__(
        self,
        public_root: str | Path,
        default_dir: str = DEFAULT_ASSET_DIR,
        max_bytes: int | None = 10 * 1024 * 1024,
    ):
        self.public_root = Path(public_root)
        self.default_dir = default_dir
        self.max_bytes = max_bytes

    def resolve(self, reference: str | None) -> AssetResult:
        if not reference or not reference.strip():
            return AssetResult(reference=reference or "", error="empty reference")

        path = upload_path_for(reference, self.public_root, self.default_dir)

        failure = self._check(path)
        if failure:
            logger.warning("Asset %r unavailable (%s): %s", reference, failure, path)
            return AssetResult(reference=reference, path=path, error=failure)

        try:
            raw = path.read_bytes()
        except OSError as exc:
            logger.warning("Asset %r unreadable: %s", reference, exc)
            return AssetResult(reference=reference, path=path, error=f"unreadable: {exc}")

        logger.debug("Inlined asset %s (%d bytes)", path, len(raw))
        return AssetResult(
            reference=reference,
            path=path,
            data_uri=to_data_uri(raw, mime_type_for(path)),
        )

    def _check(self, path: Path) -> str | None:
        try:
            resolved = path.resolve()
            if not resolved.is_relative_to(self.public_root.resolve()):
                return "outside public root"
            if not resolved.is_file():
                return "file does not exist"
            if self.max_bytes is not None and resolved.stat().st_size > self.max_bytes:
                return f"larger than {self.max_bytes} bytes"
        except OSError as exc:
            return f"stat failed: {exc}"
        return None
