"""
Calls to the generative model that writes the location analysis.

Two providers:
  - openai: chat completions over HTTPS (requests), JSON-schema response mode
  - gemini: google-generativeai, JSON mime type + prompt instructions

request_analysis() returns the model's raw reply text. It tries the primary
model, then the configured fallback model, and raises one of the errors in
errors.py when no model produced a reply.
"""

import logging

import google.generativeai as genai
import requests
from google.api_core import exceptions as google_exceptions

from analysis import ANALYSIS_SCHEMA
from config import Settings
from errors import ConfigurationError, TransportError, UpstreamError

logger = logging.getLogger(__name__)

# Max characters of upstream body text written to logs.
_LOG_BODY_LIMIT = 500


def call_openai(prompt: str, model: str, settings: Settings) -> str:
    payload = {
        "model": model,
        "temperature": settings.temperature,
        "response_format": {"type": "json_schema", "json_schema": ANALYSIS_SCHEMA},
        "messages": [{"role": "user", "content": prompt}],
    }
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {settings.openai_api_key}",
    }

    try:
        resp = requests.post(settings.openai_api_url, json=payload, headers=headers,
                             timeout=settings.timeout)
    except requests.Timeout as e:
        raise TransportError(f"OpenAI API timed out after {settings.timeout:g}s") from e
    except requests.RequestException as e:
        raise TransportError(f"Could not reach OpenAI API: {e}") from e

    if not resp.ok:
        text = resp.text
        raise UpstreamError(f"OpenAI API error: {text}", status=resp.status_code, body=text)

    try:
        data = resp.json()
    except ValueError as e:
        raise UpstreamError("OpenAI API returned a non-JSON body.",
                            status=resp.status_code, body=resp.text) from e

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    return content if isinstance(content, str) else "{}"


_gemini_configured_key = None


def _configure_gemini(api_key: str) -> None:
    # genai keeps one process-wide client; only reconfigure when the key changes.
    global _gemini_configured_key
    if api_key != _gemini_configured_key:
        genai.configure(api_key=api_key)
        _gemini_configured_key = api_key


def call_gemini(prompt: str, model: str, settings: Settings) -> str:
    _configure_gemini(settings.gemini_api_key)
    generation_config = {
        "temperature": settings.temperature,
        "response_mime_type": "application/json",
    }
    try:
        resp = genai.GenerativeModel(model).generate_content(
            prompt,
            generation_config=generation_config,
            request_options={"timeout": settings.timeout},
        )
    except (google_exceptions.DeadlineExceeded, google_exceptions.ServiceUnavailable,
            google_exceptions.RetryError) as e:
        raise TransportError(f"Could not reach Gemini API: {e}") from e
    except google_exceptions.GoogleAPICallError as e:
        message = getattr(e, "message", None) or str(e)
        raise UpstreamError(f"Gemini API error: {message}", status=e.code, body=message) from e

    try:
        text = resp.text
    except ValueError as e:
        # Raised when the reply has no text part (e.g. blocked by safety filters).
        raise UpstreamError(f"Gemini API returned no text: {e}", status=200, body=str(e)) from e
    if not text:
        raise UpstreamError("Gemini API returned an empty reply.", status=200)
    return text


def request_analysis(prompt: str, settings: Settings) -> str:
    if not settings.api_key:
        raise ConfigurationError(f"{settings.key_name} is not configured in this environment.")

    last_error = None
    for model_name in settings.models:
        try:
            if settings.provider == "gemini":
                return call_gemini(prompt, model_name, settings)
            return call_openai(prompt, model_name, settings)
        except TransportError as e:
            logger.warning("%s transport error with model %s: %s", settings.provider, model_name, e.message)
            last_error = e
        except UpstreamError as e:
            logger.warning("%s upstream error with model %s (status=%s): %s",
                           settings.provider, model_name, e.status, e.body[:_LOG_BODY_LIMIT])
            if not e.retryable:
                raise
            last_error = e
    raise last_error
