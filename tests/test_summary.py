import json

from models.devotional import RelatedVerse, VerseSummary
from utils import summary
from utils.errors import AIError, AIOutputError, ConfigurationError
from utils.summary import generate_verse_summary, recover_related_verses

SUMMARY_TEXT = "Deus demonstra seu amor de forma concreta e pessoal."

RELATED = [
    {"reference": "Romanos 5:8", "text": "Mas Deus prova o seu amor para conosco."},
    {"reference": "1 João 4:9", "text": "Nisto se manifestou o amor de Deus."},
    {"reference": "Efésios 2:4", "text": "Mas Deus, que é riquíssimo em misericórdia."},
]


def _invalid_output(payload):
    text = json.dumps(payload, ensure_ascii=False)
    return AIOutputError("AI output failed validation", text=text, value=payload)


def _raise(error):
    def fake_generate(prompt, schema, **kwargs):
        raise error
    return fake_generate


def test_valid_summary(monkeypatch):
    def fake_generate(prompt, schema, **kwargs):
        assert schema is VerseSummary
        assert 'João 3:16: "Deus amou o mundo."' in prompt
        return VerseSummary(summary=SUMMARY_TEXT, relatedVerses=[RelatedVerse(**v) for v in RELATED])

    monkeypatch.setattr(summary, "generate_object", fake_generate)

    result = generate_verse_summary("Deus amou o mundo.", "João 3:16", "pt")

    assert result == {"success": True, "summary": SUMMARY_TEXT, "relatedVerses": RELATED}


def test_recovers_snake_case_list_wrapper(monkeypatch):
    payload = [{"summary": SUMMARY_TEXT, "related_verses": RELATED + [{"reference": "x", "text": "y"}]}]
    monkeypatch.setattr(summary, "generate_object", _raise(_invalid_output(payload)))

    result = generate_verse_summary("Deus amou o mundo.")

    assert result == {"success": True, "summary": SUMMARY_TEXT, "relatedVerses": RELATED}


def test_recovers_malformed_json_fragments(monkeypatch):
    fragments = [f'"reference": "{v["reference"]}", "text": "{v["text"]}"' for v in RELATED]
    payload = {"summary": SUMMARY_TEXT, "relatedVerses": fragments}
    monkeypatch.setattr(summary, "generate_object", _raise(_invalid_output(payload)))

    result = generate_verse_summary("Deus amou o mundo.")

    assert result["success"] is True
    assert result["relatedVerses"] == RELATED


def test_placeholder_strings_trigger_second_call(monkeypatch):
    calls = []

    def fake_generate(prompt, schema, **kwargs):
        calls.append(schema)
        if schema is VerseSummary:
            raise _invalid_output({"summary": SUMMARY_TEXT, "relatedVerses": ["reference", "text", "reference"]})
        return [RelatedVerse(**v) for v in RELATED]

    monkeypatch.setattr(summary, "generate_object", fake_generate)

    result = generate_verse_summary("Deus amou o mundo.", "João 3:16")

    assert len(calls) == 2
    assert result == {"success": True, "summary": SUMMARY_TEXT, "relatedVerses": RELATED}


def test_second_call_failure_keeps_summary(monkeypatch):
    def fake_generate(prompt, schema, **kwargs):
        if schema is VerseSummary:
            raise _invalid_output({"summary": SUMMARY_TEXT, "relatedVerses": ["reference", "text"]})
        raise AIError("quota", status_code=429)

    monkeypatch.setattr(summary, "generate_object", fake_generate)

    assert generate_verse_summary("Deus amou o mundo.") == {
        "success": True,
        "summary": SUMMARY_TEXT,
        "relatedVerses": [],
    }


def test_recover_related_verses_from_loose_strings():
    items = [
        'Salmos 34:7: "O anjo do Senhor acampa-se ao redor dos que o temem."',
        "Isaías 41:10: Não temas, porque eu sou contigo.",
        {"verse": "Tudo posso naquele que me fortalece.", "ref": "Filipenses 4:13"},
        "reference",
        {"reference": "Jo", "text": "curto"},
    ]

    assert recover_related_verses(items) == [
        {"reference": "Salmos 34:7", "text": "O anjo do Senhor acampa-se ao redor dos que o temem."},
        {"reference": "Isaías 41:10", "text": "Não temas, porque eu sou contigo."},
        {"reference": "Filipenses 4:13", "text": "Tudo posso naquele que me fortalece."},
    ]


def test_total_failure_returns_empty_result(monkeypatch):
    failure = {"success": False, "summary": None, "relatedVerses": []}

    monkeypatch.setattr(summary, "generate_object", _raise(AIOutputError("not json", text="oops")))
    assert generate_verse_summary("verse") == failure

    monkeypatch.setattr(summary, "generate_object", _raise(ConfigurationError("AI host not configured")))
    assert generate_verse_summary("verse") == failure

    monkeypatch.setattr(summary, "generate_object", _raise(AIError("down", status_code=503)))
    assert generate_verse_summary("verse") == failure
