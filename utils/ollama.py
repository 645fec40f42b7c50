import json
import logging
from typing import Any, Optional

import requests
from pydantic import TypeAdapter, ValidationError

from config import load_config
from .errors import AIError, AIOutputError, AIRateLimitError, ConfigurationError
from .retry import with_retry

logger = logging.getLogger(__name__)


def _resolve_ollama_config() -> dict:
    config = load_config()
    return config.get("ollama", {})


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(body: Any, fallback: str) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or fallback)
        if error:
            return str(error)
    if isinstance(body, str) and body.strip():
        return body.strip()
    return fallback


def generate_structured(
    prompt: str,
    schema: Any,
    temperature: float = 0.3,
    max_tokens: Optional[int] = None,
    model: Optional[str] = None,
) -> Any:
    """Single structured-generation call against the Ollama HTTP API.

    ``schema`` is any type pydantic can validate (a model class or an
    annotated list). Its JSON schema is sent as the ``format`` constraint and
    the model output is validated against it.

    Raises:
        ConfigurationError: no host configured.
        AIRateLimitError: HTTP 429 from the provider (or a proxy in front of it).
        AIError: any other transport or HTTP failure.
        AIOutputError: output is not JSON or does not match ``schema``.
    """
    cfg = _resolve_ollama_config()
    host = cfg.get("host")
    if not host:
        raise ConfigurationError("AI host not configured. Set OLLAMA_HOST or [ollama].host.")
    adapter = TypeAdapter(schema)
    options = {"temperature": temperature}
    if max_tokens:
        options["num_predict"] = max_tokens
    payload = {
        "model": model or cfg.get("model", "llama3.2"),
        "prompt": prompt,
        "stream": False,
        "format": adapter.json_schema(),
        "options": options,
    }
    headers = {"Content-Type": "application/json"}
    if cfg.get("api_key"):
        headers["Authorization"] = f"Bearer {cfg['api_key']}"

    try:
        response = requests.post(
            f"{host}/api/generate",
            json=payload,
            headers=headers,
            timeout=cfg.get("timeout", 60),
        )
    except requests.RequestException as exc:
        raise AIError(f"AI request failed: {exc}") from exc

    if response.status_code == 429:
        body = _response_body(response)
        details = []
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            details = body["error"].get("details") or []
        raise AIRateLimitError(
            _error_message(body, "AI quota exceeded"),
            retry_after=response.headers.get("Retry-After"),
            details=details,
            body=body,
        )
    if not response.ok:
        body = _response_body(response)
        raise AIError(
            f"AI request failed: {response.status_code} {_error_message(body, response.reason or '')}",
            status_code=response.status_code,
            body=body,
        )

    text = (response.json() or {}).get("response") or ""
    try:
        parsed = json.loads(text)
    except ValueError as exc:
        raise AIOutputError("AI output is not valid JSON", text=text) from exc
    try:
        return adapter.validate_python(parsed)
    except ValidationError as exc:
        raise AIOutputError(f"AI output failed validation: {exc}", text=text, value=parsed) from exc


def generate_object(prompt: str, schema: Any, **kwargs) -> Any:
    """``generate_structured`` wrapped by the retry executor.

    Configuration and schema-validation errors are not retried: the first
    cannot succeed and the second is handled by the caller's recovery path.
    """
    cfg = _resolve_ollama_config()
    return with_retry(
        lambda: generate_structured(prompt, schema, **kwargs),
        max_retries=cfg.get("max_retries", 2),
        base_delay=cfg.get("retry_base_delay", 2.0),
        no_retry=(ConfigurationError, AIOutputError),
    )
