"""Shared fixtures for the RentWise test suite.

Provides a Flask test client and a clean model/geocoder environment so no
test depends on a developer's .env or reaches the network.
"""

from unittest.mock import MagicMock

import pytest
import requests

from app import app

_CONFIG_VARS = (
    "ANALYSIS_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_MODEL_FALLBACK",
    "OPENAI_API_URL",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_MODEL_FALLBACK",
    "MODEL_TIMEOUT",
    "MODEL_TEMPERATURE",
    "GEOCODER_USER_AGENT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Start every test with no provider keys or overrides configured."""
    for name in _CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture()
def openai_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return "sk-test"


@pytest.fixture()
def client():
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


def mock_response(status_code=200, json_data=None, text=""):
    """Create a mock requests.Response object."""
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.text = text
    if json_data is not None:
        resp.json.return_value = json_data
    else:
        resp.json.side_effect = ValueError("No JSON")
    return resp


def chat_completion(content):
    """OpenAI chat completion body whose first message carries `content`."""
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}
