import uuid
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional, List, Literal

ExportStatus = Literal["DRAFT", "READY", "EXPORTED"]
PageType = Literal["TEXT", "IMAGE", "DIVIDER", "COVER", "ABOUT"]


def _reject_null(v: Any) -> Any:
    # Omit a field to leave it unchanged; null is not a value these columns accept
    if v is None:
        raise ValueError("Field cannot be null")
    return v


# ── Requests ─────────────────────────────────────────────────────────────────

class EbookExportCreateRequest(BaseModel):
    prompt_ids: List[uuid.UUID] = Field(min_length=1)
    title: Optional[str] = None
    subtitle: Optional[str] = None
    author: Optional[str] = None


class EbookExportUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    subtitle: Optional[str] = None
    author: Optional[str] = None
    cover_image: Optional[str] = None
    about_text: Optional[str] = None
    include_categories: Optional[bool] = None
    include_tags: Optional[bool] = None
    thank_you_title: Optional[str] = None
    thank_you_message: Optional[str] = None
    status: Optional[ExportStatus] = None

    @field_validator("title", "include_categories", "include_tags", "status", mode="before")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return _reject_null(v)


class PromptOrderItem(BaseModel):
    id: uuid.UUID
    order: int = Field(ge=0)


class PromptOrderRequest(BaseModel):
    prompts: List[PromptOrderItem] = Field(min_length=1)

    @field_validator("prompts")
    @classmethod
    def unique_entries_and_orders(cls, v: List[PromptOrderItem]) -> List[PromptOrderItem]:
        if len({item.id for item in v}) != len(v):
            raise ValueError("Each prompt entry may appear only once")
        if len({item.order for item in v}) != len(v):
            raise ValueError("Order values must be unique")
        return v


class EbookPromptUpdateRequest(BaseModel):
    custom_title: Optional[str] = None
    custom_intro: Optional[str] = None
    include_instructions: Optional[bool] = None
    include_samples: Optional[bool] = None

    @field_validator("include_instructions", "include_samples", mode="before")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return _reject_null(v)


class SampleInclusionRequest(BaseModel):
    include_in_export: bool


class EbookPageCreateRequest(BaseModel):
    title: Optional[str] = None
    content: str = ""
    order: int = Field(default=0, ge=0)
    page_type: PageType = "TEXT"
    image_url: Optional[str] = None


class EbookPageUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)
    page_type: Optional[PageType] = None
    image_url: Optional[str] = None

    @field_validator("content", "order", "page_type", mode="before")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return _reject_null(v)


# ── Responses ────────────────────────────────────────────────────────────────

class TagResponse(BaseModel):
    name: str
    color: Optional[str] = None

    model_config = {"from_attributes": True}


class SampleOutputResponse(BaseModel):
    id: uuid.UUID
    title: Optional[str] = None
    content: Optional[str] = None
    output_type: str
    file_path: Optional[str] = None
    include_in_export: bool

    model_config = {"from_attributes": True}


class PromptSummary(BaseModel):
    id: uuid.UUID
    title: str
    prompt_type: str
    instructions: Optional[str] = None
    sample_outputs: List[SampleOutputResponse] = []

    model_config = {"from_attributes": True}


class EbookPromptResponse(BaseModel):
    id: uuid.UUID
    prompt_id: uuid.UUID
    order: int
    custom_title: Optional[str] = None
    custom_intro: Optional[str] = None
    include_instructions: bool
    include_samples: bool
    prompt: PromptSummary

    model_config = {"from_attributes": True}


class EbookPageResponse(BaseModel):
    id: uuid.UUID
    title: Optional[str] = None
    content: str
    order: int
    page_type: str
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class EbookExportResponse(BaseModel):
    id: uuid.UUID
    title: str
    subtitle: Optional[str] = None
    author: Optional[str] = None
    cover_image: Optional[str] = None
    about_text: Optional[str] = None
    include_categories: bool
    include_tags: bool
    thank_you_title: Optional[str] = None
    thank_you_message: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime
    prompts: List[EbookPromptResponse] = []
    pages: List[EbookPageResponse] = []

    model_config = {"from_attributes": True}


class EbookExportSummary(BaseModel):
    id: uuid.UUID
    title: str
    subtitle: Optional[str] = None
    author: Optional[str] = None
    status: str
    prompt_count: int
    page_count: int
    created_at: datetime
    updated_at: datetime
