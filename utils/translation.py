import logging
import re
from typing import Dict, Optional

from models.devotional import REFERENCE_PREFIX_RE, ReferenceTranslation, Translation
from .errors import AIOutputError, ConfigurationError
from .ollama import generate_object

logger = logging.getLogger(__name__)

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_RE = re.compile(r"\*(.+?)\*")
_BARE_REFERENCE_RE = re.compile(r"^(?:[1-3]\s)?[^\W\d_]+ \d+:\d+$")
_PREAMBLES = ("aqui está", "tradução", "**")


def clean_translation(text: str, strip_reference: bool = True) -> str:
    """Strip reference echoes, markdown and preamble lines from model output.

    >>> clean_translation('João 3:16: "Deus amou o mundo."')
    'Deus amou o mundo.'
    """
    cleaned = (text or "").strip()
    match = REFERENCE_PREFIX_RE.match(cleaned) if strip_reference else None
    if match:
        # Keep the opening quote so the wrapping-quote strip below can pair it.
        cleaned = match.group("quote") + cleaned[match.end():]
    cleaned = _BOLD_RE.sub(r"\1", cleaned)
    cleaned = _ITALIC_RE.sub(r"\1", cleaned)

    lines = []
    for line in cleaned.split("\n"):
        lower = line.strip().lower()
        if not lower:
            continue
        if lower.startswith(_PREAMBLES) or (strip_reference and _BARE_REFERENCE_RE.match(lower)):
            continue
        lines.append(line)
    cleaned = "\n".join(lines).strip()

    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in ("'", '"'):
        cleaned = cleaned[1:-1].strip()
    return re.sub(r"\s+", " ", cleaned).strip()


def _verse_prompt(verse: str, reference: Optional[str]) -> str:
    if reference:
        return (
            "Traduza APENAS o texto do verso abaixo para português brasileiro. "
            f"IMPORTANTE: NÃO inclua a referência bíblica ({reference}) no texto traduzido. "
            "Retorne SOMENTE o texto do verso traduzido, sem a referência, sem explicações, "
            "sem formatação markdown. Apenas o texto puro do verso.\n\n"
            f'Verso: "{verse}"'
        )
    return (
        "Traduza APENAS o texto abaixo para português brasileiro. Retorne SOMENTE o texto "
        "traduzido, sem explicações, sem formatação markdown. Apenas o texto puro.\n\n"
        f'"{verse}"'
    )


def _translate_text(verse: str, reference: Optional[str]) -> str:
    try:
        result = generate_object(
            _verse_prompt(verse, reference), Translation, temperature=0.3, max_tokens=500
        )
        return clean_translation(result.translation.strip())
    except AIOutputError as exc:
        # A reference echo fails validation but is exactly what cleaning removes.
        value = exc.value if isinstance(exc.value, dict) else {}
        raw = value.get("translation")
        if isinstance(raw, str) and clean_translation(raw):
            logger.info("Recovered translation from output that echoed the reference")
            return clean_translation(raw)
        raise


def translate_verse(verse: str, reference: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Portuguese rendition of a verse and its reference.

    Never raises: missing configuration or any AI failure yields
    ``{"verseTranslated": None, "referenceTranslated": None}``.
    """
    try:
        verse_translated = _translate_text(verse, reference)
        reference_translated = None
        if reference:
            result = generate_object(
                "Traduza APENAS a referência para português. Retorne SOMENTE o texto "
                f"traduzido, sem explicações: {reference}",
                ReferenceTranslation,
                temperature=0.2,
                max_tokens=100,
            )
            reference_translated = clean_translation(result.translation.strip(), strip_reference=False)
        return {
            "verseTranslated": verse_translated or None,
            "referenceTranslated": reference_translated or None,
        }
    except ConfigurationError as exc:
        logger.warning("Skipping translation: %s", exc)
    except Exception:
        logger.exception("Verse translation failed")
    return {"verseTranslated": None, "referenceTranslated": None}
