import asyncio
import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, status
from fastapi.responses import Response
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.dependencies import DBSession
from app.models.ebook import EbookExport, EbookPrompt, EbookPage
from app.models.prompt import Prompt, PromptTag, SampleOutput
from app.schemas.common import MessageResponse
from app.schemas.ebook import (
    EbookExportCreateRequest, EbookExportUpdateRequest, EbookExportResponse, EbookExportSummary,
    PromptOrderRequest, EbookPromptUpdateRequest, EbookPromptResponse,
    SampleInclusionRequest, SampleOutputResponse,
    EbookPageCreateRequest, EbookPageUpdateRequest, EbookPageResponse,
)
from app.core.exceptions import (
    NotFoundException, ValidationException, PdfGenerationException, EbookGenerationError,
)
from app.services.asset_resolver import AssetResolver
from app.services.ebook_layout import ExportConfig
from app.services.ebook_export_service import generate_ebook_pdf

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_ebook(db: AsyncSession, ebook_id: uuid.UUID) -> EbookExport | None:
    """Fetch an export with every relation the PDF pipeline reads, eagerly."""
    result = await db.execute(
        select(EbookExport)
        .where(EbookExport.id == ebook_id)
        .options(
            selectinload(EbookExport.prompts)
            .selectinload(EbookPrompt.prompt)
            .options(
                selectinload(Prompt.tags).selectinload(PromptTag.tag),
                selectinload(Prompt.sample_outputs),
            ),
            selectinload(EbookExport.pages),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_ebook_or_404(db: AsyncSession, ebook_id: uuid.UUID) -> EbookExport:
    ebook = await _load_ebook(db, ebook_id)
    if not ebook:
        raise NotFoundException("Ebook not found")
    return ebook


def _default_title() -> str:
    today = datetime.now().astimezone()
    return f"Prompt Collection - {today.month}/{today.day}/{today.year}"


@router.post("/", response_model=EbookExportResponse, status_code=status.HTTP_201_CREATED)
async def create_export(payload: EbookExportCreateRequest, db: DBSession):
    """Create an export with one entry per selected prompt, in selection order."""
    if len(set(payload.prompt_ids)) != len(payload.prompt_ids):
        raise ValidationException("Duplicate prompt IDs")

    result = await db.execute(select(Prompt.id).where(Prompt.id.in_(payload.prompt_ids)))
    if len(result.scalars().all()) != len(payload.prompt_ids):
        raise NotFoundException("One or more prompts not found")

    ebook = EbookExport(
        title=payload.title or _default_title(),
        subtitle=payload.subtitle,
        author=payload.author,
        prompts=[
            EbookPrompt(prompt_id=prompt_id, order=index)
            for index, prompt_id in enumerate(payload.prompt_ids)
        ],
    )
    db.add(ebook)
    await db.commit()
    logger.info("Created export %s with %d prompts", ebook.id, len(payload.prompt_ids))
    return await _get_ebook_or_404(db, ebook.id)


@router.get("/", response_model=list[EbookExportSummary])
async def list_exports(db: DBSession):
    prompt_count = (
        select(func.count(EbookPrompt.id))
        .where(EbookPrompt.ebook_id == EbookExport.id)
        .correlate(EbookExport)
        .scalar_subquery()
    )
    page_count = (
        select(func.count(EbookPage.id))
        .where(EbookPage.ebook_id == EbookExport.id)
        .correlate(EbookExport)
        .scalar_subquery()
    )
    result = await db.execute(
        select(EbookExport, prompt_count, page_count).order_by(EbookExport.updated_at.desc())
    )
    return [
        EbookExportSummary(
            id=ebook.id,
            title=ebook.title,
            subtitle=ebook.subtitle,
            author=ebook.author,
            status=ebook.status,
            prompt_count=n_prompts,
            page_count=n_pages,
            created_at=ebook.created_at,
            updated_at=ebook.updated_at,
        )
        for ebook, n_prompts, n_pages in result.all()
    ]


@router.get("/{ebook_id}", response_model=EbookExportResponse)
async def get_export(ebook_id: uuid.UUID, db: DBSession):
    return await _get_ebook_or_404(db, ebook_id)


@router.patch("/{ebook_id}", response_model=EbookExportResponse)
async def update_export(ebook_id: uuid.UUID, payload: EbookExportUpdateRequest, db: DBSession):
    ebook = await _get_ebook_or_404(db, ebook_id)
    updates = payload.model_dump(exclude_unset=True)
    if "title" in updates and not updates["title"]:
        raise ValidationException("Title cannot be empty")

    for field, value in updates.items():
        setattr(ebook, field, value)
    await db.commit()
    return await _get_ebook_or_404(db, ebook_id)


@router.delete("/{ebook_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_export(ebook_id: uuid.UUID, db: DBSession):
    ebook = await _get_ebook_or_404(db, ebook_id)
    await db.delete(ebook)
    await db.commit()
    logger.info("Deleted export %s", ebook_id)


@router.put("/{ebook_id}/prompts/order", response_model=MessageResponse)
async def reorder_prompts(ebook_id: uuid.UUID, payload: PromptOrderRequest, db: DBSession):
    """Bulk-assign ``order`` values to the export's prompt entries."""
    ebook = await _get_ebook_or_404(db, ebook_id)
    entries = {entry.id: entry for entry in ebook.prompts}

    unknown = [str(item.id) for item in payload.prompts if item.id not in entries]
    if unknown:
        raise ValidationException(f"Prompt entries not in this ebook: {', '.join(unknown)}")

    # Orders stay unique per export, so the sequence never depends on row order
    final = {entry_id: entry.order for entry_id, entry in entries.items()}
    final.update({item.id: item.order for item in payload.prompts})
    if len(set(final.values())) != len(final):
        raise ValidationException("Order values would collide with other prompt entries")

    for item in payload.prompts:
        entries[item.id].order = item.order
    await db.commit()
    return MessageResponse(message="Prompt order updated")


@router.patch("/{ebook_id}/prompts/{entry_id}", response_model=EbookPromptResponse)
async def update_ebook_prompt(
    ebook_id: uuid.UUID,
    entry_id: uuid.UUID,
    payload: EbookPromptUpdateRequest,
    db: DBSession,
):
    ebook = await _get_ebook_or_404(db, ebook_id)
    entry = next((e for e in ebook.prompts if e.id == entry_id), None)
    if not entry:
        raise NotFoundException("Ebook prompt not found")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(entry, field, value)
    await db.commit()
    return entry


@router.patch("/{ebook_id}/samples/{sample_id}", response_model=SampleOutputResponse)
async def update_sample_inclusion(
    ebook_id: uuid.UUID,
    sample_id: uuid.UUID,
    payload: SampleInclusionRequest,
    db: DBSession,
):
    """Toggle whether one sample output of a prompt in this export is printed."""
    result = await db.execute(
        select(SampleOutput)
        .join(EbookPrompt, EbookPrompt.prompt_id == SampleOutput.prompt_id)
        .where(SampleOutput.id == sample_id, EbookPrompt.ebook_id == ebook_id)
    )
    sample = result.scalars().first()
    if not sample:
        raise NotFoundException("Sample output not found in this ebook")

    sample.include_in_export = payload.include_in_export
    await db.commit()
    return sample


@router.post("/{ebook_id}/pages", response_model=EbookPageResponse, status_code=status.HTTP_201_CREATED)
async def create_page(ebook_id: uuid.UUID, payload: EbookPageCreateRequest, db: DBSession):
    result = await db.execute(select(EbookExport.id).where(EbookExport.id == ebook_id))
    if not result.scalar_one_or_none():
        raise NotFoundException("Ebook not found")

    page = EbookPage(ebook_id=ebook_id, **payload.model_dump())
    db.add(page)
    await db.commit()
    await db.refresh(page)
    return page


@router.patch("/{ebook_id}/pages/{page_id}", response_model=EbookPageResponse)
async def update_page(
    ebook_id: uuid.UUID,
    page_id: uuid.UUID,
    payload: EbookPageUpdateRequest,
    db: DBSession,
):
    result = await db.execute(
        select(EbookPage).where(EbookPage.id == page_id, EbookPage.ebook_id == ebook_id)
    )
    page = result.scalar_one_or_none()
    if not page:
        raise NotFoundException("Page not found")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(page, field, value)
    await db.commit()
    await db.refresh(page)
    return page


@router.delete("/{ebook_id}/pages/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(ebook_id: uuid.UUID, page_id: uuid.UUID, db: DBSession):
    result = await db.execute(
        select(EbookPage).where(EbookPage.id == page_id, EbookPage.ebook_id == ebook_id)
    )
    page = result.scalar_one_or_none()
    if not page:
        raise NotFoundException("Page not found")
    await db.delete(page)
    await db.commit()


@router.post("/{ebook_id}/pdf")
async def export_ebook_pdf(ebook_id: uuid.UUID, db: DBSession):
    """Generate the ebook PDF, mark the export EXPORTED and return it as a download."""
    ebook = await _get_ebook_or_404(db, ebook_id)

    resolver = AssetResolver(
        settings.PUBLIC_ROOT,
        default_dir=settings.UPLOADS_DEFAULT_DIR,
        max_bytes=settings.PDF_MAX_ASSET_BYTES,
    )
    config = ExportConfig.from_settings(settings)

    try:
        artifact = await asyncio.wait_for(
            run_in_threadpool(generate_ebook_pdf, ebook, resolver, config),
            timeout=settings.PDF_GENERATION_TIMEOUT_SECONDS,
        )
    except EbookGenerationError as exc:
        raise PdfGenerationException(str(exc))
    except asyncio.TimeoutError:
        logger.error("PDF generation for %s timed out", ebook_id)
        raise PdfGenerationException(
            f"Generation exceeded {settings.PDF_GENERATION_TIMEOUT_SECONDS:g} seconds"
        )

    ebook.status = "EXPORTED"
    await db.commit()

    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{artifact.filename}"',
            "Content-Length": str(len(artifact.content)),
        },
    )
