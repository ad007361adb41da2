import uuid
from datetime import datetime
from sqlalchemy import String, Boolean, Integer, DateTime, Text, Uuid, func, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

EXPORT_STATUS = SAEnum("DRAFT", "READY", "EXPORTED", name="export_status")

PAGE_TYPE = SAEnum("TEXT", "IMAGE", "DIVIDER", "COVER", "ABOUT", name="ebook_page_type")


class EbookExport(Base):
    __tablename__ = "ebook_exports"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    subtitle: Mapped[str | None] = mapped_column(String(500))
    author: Mapped[str | None] = mapped_column(String(255))
    cover_image: Mapped[str | None] = mapped_column(String(1000))
    about_text: Mapped[str | None] = mapped_column(Text)
    include_categories: Mapped[bool] = mapped_column(Boolean, default=False)
    include_tags: Mapped[bool] = mapped_column(Boolean, default=False)
    thank_you_title: Mapped[str | None] = mapped_column(String(255), default="Thank You")
    thank_you_message: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(EXPORT_STATUS, default="DRAFT")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    prompts: Mapped[list["EbookPrompt"]] = relationship(
        back_populates="ebook",
        cascade="all, delete-orphan",
        order_by="EbookPrompt.order",
    )
    pages: Mapped[list["EbookPage"]] = relationship(
        back_populates="ebook",
        cascade="all, delete-orphan",
        order_by="EbookPage.order",
    )


class EbookPrompt(Base):
    """A prompt placed in an export, with per-export overrides."""

    __tablename__ = "ebook_prompts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ebook_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("ebook_exports.id", ondelete="CASCADE"), nullable=False, index=True)
    prompt_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False, index=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    custom_title: Mapped[str | None] = mapped_column(String(500))
    custom_intro: Mapped[str | None] = mapped_column(Text)
    include_instructions: Mapped[bool] = mapped_column(Boolean, default=True)
    include_samples: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    ebook: Mapped["EbookExport"] = relationship(back_populates="prompts")
    prompt: Mapped["Prompt"] = relationship()  # noqa: F821


class EbookPage(Base):
    __tablename__ = "ebook_pages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ebook_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("ebook_exports.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(500))
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    page_type: Mapped[str] = mapped_column(PAGE_TYPE, default="TEXT")
    image_url: Mapped[str | None] = mapped_column(String(1000))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    ebook: Mapped["EbookExport"] = relationship(back_populates="pages")
