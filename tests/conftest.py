"""Shared pytest fixtures for the Prompt CRM export test suite."""

import os

# Must be set before app.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import uuid
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models import Category, Tag, Prompt, PromptTag, SampleOutput, EbookExport, EbookPrompt
from app.services.asset_resolver import AssetResolver
from app.services.ebook_layout import ExportConfig


# ---------------------------------------------------------------------------
# Asset fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def public_root(tmp_path):
    """A public root with a couple of real images and one corrupt file."""
    root = tmp_path / "public"
    images = root / "uploads" / "images"
    images.mkdir(parents=True)
    Image.new("RGB", (64, 32), "#4f46e5").save(images / "cover.png")
    Image.new("RGB", (120, 80), "#10b981").save(images / "sample.jpg", format="JPEG")
    (images / "broken.png").write_bytes(b"not really a png")
    return root


@pytest.fixture
def resolver(public_root):
    return AssetResolver(public_root)


@pytest.fixture
def export_config():
    return ExportConfig()


@pytest.fixture
def generated_at():
    return datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Transient ORM builders (never attached to a session)
# ---------------------------------------------------------------------------

def _make_prompt(title="Product Description", content="Write a description. Keep it short.",
                 instructions=None, prompt_type="TEXT_GENERATION", tags=(), samples=()):
    return Prompt(
        id=uuid.uuid4(),
        title=title,
        content=content,
        instructions=instructions,
        prompt_type=prompt_type,
        tags=[PromptTag(tag=Tag(name=name)) for name in tags],
        sample_outputs=[SampleOutput(id=uuid.uuid4(), **s) for s in samples],
    )


def _make_entry(prompt, order, **overrides):
    return EbookPrompt(id=uuid.uuid4(), prompt=prompt, order=order, **overrides)


def _make_ebook(entries=(), **fields):
    fields.setdefault("title", "Marketing Prompts")
    return EbookExport(id=uuid.uuid4(), prompts=list(entries), **fields)


@pytest.fixture
def make_prompt():
    return _make_prompt


@pytest.fixture
def make_entry():
    return _make_entry


@pytest.fixture
def make_ebook():
    return _make_ebook


# ---------------------------------------------------------------------------
# Database / API fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    """In-memory SQLite shared across sessions through a single pooled connection."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory, public_root, monkeypatch):
    """httpx client against the app, with get_db pointed at the test engine."""
    monkeypatch.setattr(settings, "PUBLIC_ROOT", str(public_root))

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
async def seeded_prompts(db):
    """Two stored prompts: one with a tag and text/image samples, one bare."""
    seo = Tag(name="seo")
    product = Prompt(
        title="Product Description",
        content="Write a product description for {product}. Keep it under 80 words.",
        instructions="Mention **three** features.",
        prompt_type="TEXT_GENERATION",
        category=Category(name="Marketing"),
        tags=[PromptTag(tag=seo)],
        sample_outputs=[
            SampleOutput(title="Water bottle", content="A sleek bottle that keeps drinks cold.", output_type="TEXT"),
            SampleOutput(title="Hero shot", output_type="IMAGE", file_path="/uploads/images/sample.jpg"),
        ],
    )
    subjects = Prompt(
        title="Email Subject Lines",
        content="Suggest five subject lines for {campaign}.",
        prompt_type="CREATIVE_WRITING",
    )
    db.add_all([product, subjects])
    await db.commit()
    return [product, subjects]
