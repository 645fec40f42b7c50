import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Annotated, List, Optional

from .search import Language

# "João 3:16", "Gênesis 35:1:", "1 John 4:9" at the very start of a text
REFERENCE_PREFIX_RE = re.compile(r"""^(?P<quote>['"]?)(?:[1-3]\s)?[^\W\d_]+ \d+:\d+:?\s*""")


class Translation(BaseModel):
    translation: str = Field(
        ...,
        min_length=1,
        description="Only the translated verse text, without the Bible reference, explanations or markdown.",
    )

    @field_validator("translation")
    def validate_no_reference(cls, v):
        if REFERENCE_PREFIX_RE.match(v.strip()):
            raise ValueError("Translation must not start with the Bible reference")
        return v


class ReferenceTranslation(BaseModel):
    translation: str = Field(..., min_length=1)


class RelatedVerse(BaseModel):
    reference: str = Field(..., min_length=3, description="Full reference, 'Book Chapter:Verse' (e.g. John 3:16)")
    text: str = Field(..., min_length=5, description="Full verse text")


class VerseSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(
        ...,
        min_length=10,
        description="Short, inspiring summary (2-3 sentences) of the meaning of the verse",
    )
    related_verses: List[RelatedVerse] = Field(
        ...,
        alias="relatedVerses",
        min_length=3,
        max_length=5,
        description="3-5 related Bible verses, each an object with 'reference' and 'text'",
    )


RelatedVerseList = Annotated[List[RelatedVerse], Field(min_length=3, max_length=5)]


class SummaryRequest(BaseModel):
    verse: str = Field(..., min_length=1)
    reference: Optional[str] = None
    language: Language = Language.PT
