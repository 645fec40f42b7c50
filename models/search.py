from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class Language(str, Enum):
    PT = "pt"
    EN = "en"


@dataclass
class SearchCacheEntry:
    id: int
    term: str
    language: str
    results: List[Any] = field(default_factory=list)
    total: Optional[int] = None
    next_offset: int = 0
    created_at: str = ""
    updated_at: str = ""
    last_accessed_at: str = ""
