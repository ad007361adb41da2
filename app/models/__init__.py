from app.models.prompt import Category, Tag, Prompt, PromptTag, SampleOutput
from app.models.ebook import EbookExport, EbookPrompt, EbookPage

__all__ = [
    "Category", "Tag", "Prompt", "PromptTag", "SampleOutput",
    "EbookExport", "EbookPrompt", "EbookPage",
]
