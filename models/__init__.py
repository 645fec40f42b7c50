from .search import Language, SearchCacheEntry
from .devotional import RelatedVerse, VerseSummary, RelatedVerseList, Translation, ReferenceTranslation, SummaryRequest
from .saved import SavedVerseCreate, VerseRef

__all__ = [
    'Language', 'SearchCacheEntry',
    'RelatedVerse', 'VerseSummary', 'RelatedVerseList', 'Translation', 'ReferenceTranslation', 'SummaryRequest',
    'SavedVerseCreate', 'VerseRef',
]
