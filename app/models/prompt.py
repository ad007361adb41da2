import uuid
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, Text, Uuid, func, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

PROMPT_TYPE = SAEnum(
    "TEXT_GENERATION", "IMAGE_GENERATION", "CODE_GENERATION",
    "ANALYSIS", "CREATIVE_WRITING", "OTHER",
    name="prompt_type",
)

OUTPUT_TYPE = SAEnum("TEXT", "IMAGE", "FILE", name="output_type")


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#6366f1")
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    prompts: Mapped[list["Prompt"]] = relationship(back_populates="category")


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#10b981")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Prompt(Base):
    """A stored prompt. Written by the CRUD side of the system, read-only here."""

    __tablename__ = "prompts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    instructions: Mapped[str | None] = mapped_column(Text)
    prompt_type: Mapped[str] = mapped_column(PROMPT_TYPE, default="TEXT_GENERATION")
    category_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("categories.id", ondelete="SET NULL"), index=True)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    category: Mapped["Category | None"] = relationship(back_populates="prompts")
    tags: Mapped[list["PromptTag"]] = relationship(back_populates="prompt", cascade="all, delete-orphan")
    sample_outputs: Mapped[list["SampleOutput"]] = relationship(
        back_populates="prompt",
        cascade="all, delete-orphan",
        order_by="SampleOutput.created_at",
    )


class PromptTag(Base):
    __tablename__ = "prompt_tags"

    prompt_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), primary_key=True)
    tag_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)

    prompt: Mapped["Prompt"] = relationship(back_populates="tags")
    tag: Mapped["Tag"] = relationship()


class SampleOutput(Base):
    __tablename__ = "sample_outputs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    prompt_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(500))
    content: Mapped[str | None] = mapped_column(Text)
    output_type: Mapped[str] = mapped_column(OUTPUT_TYPE, default="TEXT")
    file_path: Mapped[str | None] = mapped_column(String(1000))  # web path, e.g. /uploads/images/x.png
    include_in_export: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    prompt: Mapped["Prompt"] = relationship(back_populates="sample_outputs")
