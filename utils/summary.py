"""Verse summary and related verses, with recovery from malformed model output.

Models often return almost-right JSON for the nested related-verses array:
snake_case keys, a list instead of an object, bare strings such as
``'Salmos 34:7: "O anjo do Senhor..."'`` or even the literal field names.
``generate_verse_summary`` validates strictly first, and only on validation
failure walks the recovery chain in ``recover_summary``.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from models.devotional import RelatedVerseList, VerseSummary
from .errors import AIOutputError, ConfigurationError
from .ollama import generate_object

logger = logging.getLogger(__name__)

MAX_RELATED = 5
MIN_RELATED = 3

_REFERENCE_FIELD_RE = re.compile(r'"reference"\s*:\s*"([^"]+)"')
_TEXT_FIELD_RE = re.compile(r'"text"\s*:\s*"([^"]+)"')
_QUOTED_VERSE_RE = re.compile(r"""^(.+?):\s*["'](.+?)["']\.?$""")
_REFERENCE_COLON_RE = re.compile(r"^([A-Za-zÀ-ÿ\s]+\s\d+:\d+):\s*(.+)$")

SUMMARY_PROMPT_PT = """Você é um assistente bíblico especializado. Com base no seguinte verso bíblico, gere um objeto JSON com exatamente esta estrutura:

{{
  "summary": "Resumo breve e inspirador (2-3 frases) explicando o significado e a importância do verso",
  "relatedVerses": [
    {{"reference": "João 3:16", "text": "Porque Deus amou o mundo de tal maneira que deu o seu Filho unigênito..."}},
    {{"reference": "Romanos 5:8", "text": "Mas Deus prova o seu amor para conosco..."}},
    {{"reference": "1 João 4:9", "text": "Nisto se manifestou o amor de Deus para conosco..."}}
  ]
}}

REGRAS OBRIGATÓRIAS:
1. Retorne APENAS um objeto JSON válido, NUNCA um array
2. O campo deve ser "relatedVerses" (camelCase)
3. "relatedVerses" deve ser um ARRAY DE OBJETOS com "reference" e "text"
4. Gere entre 3 e 5 versículos relacionados com referências e textos reais
5. Não inclua o campo "verse" no objeto retornado

Verso bíblico: {verse_text}"""

SUMMARY_PROMPT_EN = """You are a biblical assistant. Based on the following Bible verse, generate a JSON object with exactly this structure:

{{
  "summary": "Brief and inspiring summary (2-3 sentences) explaining the meaning and importance of this verse",
  "relatedVerses": [
    {{"reference": "John 3:16", "text": "For God so loved the world that he gave his one and only Son..."}},
    {{"reference": "Romans 5:8", "text": "But God demonstrates his own love for us..."}}
  ]
}}

IMPORTANT:
- Return ONLY a JSON object, not an array
- The field must be "relatedVerses" (camelCase)
- Each related verse must be an object with "reference" and "text"
- Generate between 3 and 5 related verses
- Do not include a "verse" field in the returned object

Bible verse: {verse_text}"""

VERSES_PROMPT_PT = """Com base no seguinte verso bíblico, gere APENAS uma lista de 3-5 versículos bíblicos relacionados. Retorne um array JSON de objetos, onde cada objeto tem "reference" e "text".

Verso: {verse_text}

Retorne APENAS o array JSON, sem explicações."""

VERSES_PROMPT_EN = """Based on the following Bible verse, generate ONLY a list of 3-5 related Bible verses. Return a JSON array of objects, where each object has "reference" and "text".

Verse: {verse_text}

Return ONLY the JSON array, no explanations."""


def _verse_text(verse: str, reference: Optional[str]) -> str:
    return f'{reference}: "{verse}"' if reference else f'"{verse}"'


def _failure() -> Dict[str, Any]:
    return {"success": False, "summary": None, "relatedVerses": []}


def _is_field_name_array(items: List[Any]) -> bool:
    return all(
        isinstance(v, str) and (v in ("reference", "text") or len(v) < 10) for v in items
    )


def _is_malformed_json_array(items: List[Any]) -> bool:
    return all(
        isinstance(v, str)
        and len(v) > 10
        and ('"reference"' in v or 'reference":' in v)
        and ('"text"' in v or 'text":' in v)
        for v in items
    )


def _keep(verses: List[Optional[Dict[str, str]]]) -> List[Dict[str, str]]:
    return [
        v for v in verses
        if v and v.get("reference") and v.get("text")
        and len(v["reference"]) > 2 and len(v["text"]) > 5
    ][:MAX_RELATED]


def _regex_pair(value: str) -> Optional[Dict[str, str]]:
    ref = _REFERENCE_FIELD_RE.search(value)
    text = _TEXT_FIELD_RE.search(value)
    if ref and text:
        return {"reference": ref.group(1).strip(), "text": text.group(1).strip()}
    return None


def _verse_from_string(value: str) -> Optional[Dict[str, str]]:
    if value in ("reference", "text") or len(value) <= 5:
        return None
    try:
        parsed = json.loads("{" + value + "}")
        if isinstance(parsed, dict) and parsed.get("reference") and parsed.get("text"):
            return {"reference": str(parsed["reference"]), "text": str(parsed["text"])}
    except ValueError:
        pass
    pair = _regex_pair(value)
    if pair:
        return pair
    match = _QUOTED_VERSE_RE.match(value)
    if match:
        return {"reference": match.group(1).strip(), "text": match.group(2).strip()}
    match = _REFERENCE_COLON_RE.match(value)
    if match:
        return {"reference": match.group(1).strip(), "text": match.group(2).strip()}
    return None


def _verse_from_object(value: Dict[str, Any]) -> Optional[Dict[str, str]]:
    if value.get("reference") and value.get("text"):
        return {"reference": str(value["reference"]), "text": str(value["text"])}
    if value.get("verse") or value.get("versiculo"):
        return {
            "reference": str(value.get("reference") or value.get("ref") or value.get("versiculo") or ""),
            "text": str(value.get("text") or value.get("verse") or value.get("versiculo") or ""),
        }
    return None


def recover_related_verses(items: List[Any]) -> List[Dict[str, str]]:
    """Best-effort ``[{reference, text}]`` from a loosely-shaped array."""
    recovered = []
    for item in items:
        if isinstance(item, str):
            recovered.append(_verse_from_string(item))
        elif isinstance(item, dict):
            recovered.append(_verse_from_object(item))
    return _keep(recovered)


def _generate_related_verses(verse: str, reference: Optional[str], language: str) -> List[Dict[str, str]]:
    template = VERSES_PROMPT_PT if language == "pt" else VERSES_PROMPT_EN
    verses = generate_object(
        template.format(verse_text=_verse_text(verse, reference)),
        RelatedVerseList,
        temperature=0.5,
        max_tokens=1500,
    )
    return [v.model_dump() for v in verses]


def _parse_error_payload(error: AIOutputError) -> Any:
    if error.text:
        try:
            return json.loads(error.text)
        except ValueError:
            pass
    return error.value


def recover_summary(
    error: AIOutputError,
    verse: str,
    reference: Optional[str] = None,
    language: str = "pt",
) -> Dict[str, Any]:
    """Salvage a summary result from output that failed validation."""
    parsed = _parse_error_payload(error)
    data = parsed[0] if isinstance(parsed, list) and parsed else parsed
    if not isinstance(data, dict):
        return _failure()
    summary = data.get("summary") if isinstance(data.get("summary"), str) else None
    items = data.get("relatedVerses") or data.get("related_verses") or []
    if not summary and not items:
        return _failure()

    related: List[Dict[str, str]] = []
    if isinstance(items, list):
        if summary and _is_malformed_json_array(items) and not _is_field_name_array(items):
            logger.warning("Model returned related verses as JSON fragments; extracting")
            extracted = _keep([_regex_pair(v) for v in items])
            if len(extracted) >= MIN_RELATED:
                return {"success": True, "summary": summary, "relatedVerses": extracted}

        if summary and _is_field_name_array(items):
            logger.warning("Model returned placeholder related verses; requesting them separately")
            try:
                related = _generate_related_verses(verse, reference, language)
            except Exception:
                logger.exception("Related-verses request failed")
                related = []
            return {"success": True, "summary": summary, "relatedVerses": related}

        related = recover_related_verses(items)

    if summary or related:
        return {"success": True, "summary": summary, "relatedVerses": related}
    return _failure()


def generate_verse_summary(
    verse: str,
    reference: Optional[str] = None,
    language: str = "pt",
) -> Dict[str, Any]:
    """``{success, summary, relatedVerses}`` for a verse; never raises."""
    template = SUMMARY_PROMPT_PT if language == "pt" else SUMMARY_PROMPT_EN
    prompt = template.format(verse_text=_verse_text(verse, reference))
    try:
        result = generate_object(prompt, VerseSummary, temperature=0.5)
        return {
            "success": True,
            "summary": result.summary,
            "relatedVerses": [v.model_dump() for v in result.related_verses],
        }
    except ConfigurationError as exc:
        logger.warning("Skipping summary: %s", exc)
    except AIOutputError as exc:
        logger.warning("Summary output failed validation, attempting recovery: %s", exc)
        try:
            return recover_summary(exc, verse, reference, language)
        except Exception:
            logger.exception("Summary recovery failed")
    except Exception:
        logger.exception("Verse summary generation failed")
    return _failure()
