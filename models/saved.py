from pydantic import BaseModel, Field
from typing import Any, Optional

from .search import Language


class VerseRef(BaseModel):
    reference: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class SavedVerseCreate(VerseRef):
    language: Language
    rawData: Optional[Any] = None
