"""Route tests for app.py: /api/analyze status mapping and geocoding endpoints."""

import json
from unittest.mock import patch

import pytest
import requests

from analysis import CATEGORIES, get_fallback
from conftest import chat_completion, mock_response
from errors import UpstreamError


def _post(client, body):
    return client.post("/api/analyze", data=json.dumps(body), content_type="application/json")


def _assert_valid_analysis(result):
    assert set(result) == set(CATEGORIES)
    for cat in CATEGORIES:
        assert result[cat]["rating"] in {1, 2, 3, 4, 5}
        assert result[cat]["description"].strip()


GOOD_REPLY = json.dumps({
    "safety": {"rating": 4, "description": "Well-lit streets."},
    "accessibility": {"rating": 7.8, "description": "Tram stop at the corner."},
    "convenience": {"rating": "oops", "description": "   "},
})


# ============================================================================
# Validation
# ============================================================================

class TestAnalyzeValidation:
    @pytest.mark.parametrize("address", ["", "   ", None, 12])
    def test_invalid_address_is_400_with_fallback(self, client, address):
        resp = _post(client, {"address": address, "language": "es"})
        assert resp.status_code == 400
        data = resp.get_json()
        assert data["error"] == "Missing or invalid 'address'."
        assert data["fallback"] == get_fallback("es")
        _assert_valid_analysis(data["fallback"])

    def test_missing_address_field(self, client):
        resp = _post(client, {"language": "zh"})
        assert resp.status_code == 400
        assert resp.get_json()["fallback"] == get_fallback("zh")

    def test_body_not_an_object(self, client):
        resp = client.post("/api/analyze", data="not json", content_type="application/json")
        assert resp.status_code == 400
        assert resp.get_json()["fallback"] == get_fallback("en")

    def test_get_is_not_allowed(self, client):
        assert client.get("/api/analyze").status_code == 405


# ============================================================================
# Configuration and upstream failures
# ============================================================================

class TestAnalyzeFailures:
    @patch("model_client.requests.post")
    def test_missing_key_is_500_with_fallback(self, mock_post, client):
        resp = _post(client, {"address": "1 Market St", "language": "zh"})

        assert resp.status_code == 500
        data = resp.get_json()
        assert "OPENAI_API_KEY" in data["error"]
        assert data["fallback"] == get_fallback("zh")
        mock_post.assert_not_called()

    @patch("model_client.requests.post")
    def test_upstream_error_is_500(self, mock_post, client, openai_key):
        mock_post.return_value = mock_response(429, text="rate limited")

        resp = _post(client, {"address": "1 Market St"})

        assert resp.status_code == 500
        data = resp.get_json()
        assert data["error"] == "OpenAI API error: rate limited"
        assert data["fallback"] == get_fallback("en")

    @patch("model_client.requests.post", side_effect=requests.ConnectionError("refused"))
    def test_transport_error_is_500(self, _, client, openai_key):
        resp = _post(client, {"address": "1 Market St", "language": "es"})
        assert resp.status_code == 500
        assert resp.get_json()["fallback"] == get_fallback("es")

    @patch("model_client.requests.post")
    def test_unparseable_reply_is_500(self, mock_post, client, openai_key):
        mock_post.return_value = mock_response(200, chat_completion("Sure! Here is my analysis."))

        resp = _post(client, {"address": "1 Market St"})

        assert resp.status_code == 500
        data = resp.get_json()
        assert data["error"] == "Model did not return valid JSON."
        assert data["fallback"] == get_fallback("en")

    @patch("model_client.requests.post")
    def test_deeply_nested_reply_keeps_requested_language(self, mock_post, client, openai_key):
        nested = '{"safety": ' + "[" * 100000 + "]" * 100000 + "}"
        mock_post.return_value = mock_response(200, chat_completion(nested))

        resp = _post(client, {"address": "1 Market St", "language": "zh"})

        assert resp.status_code == 500
        data = resp.get_json()
        assert data["error"] == "Model did not return valid JSON."
        assert data["fallback"] == get_fallback("zh")

    @patch("app.request_analysis", side_effect=RuntimeError("kaboom"))
    def test_unexpected_error_uses_english_fallback(self, _, client, openai_key):
        resp = _post(client, {"address": "1 Market St", "language": "zh"})
        assert resp.status_code == 500
        data = resp.get_json()
        assert data["error"] == "kaboom"
        assert data["fallback"] == get_fallback("en")

    @patch("app.request_analysis", side_effect=UpstreamError("Gemini API error: quota", status=429))
    def test_error_message_is_passed_through(self, _, client, openai_key):
        resp = _post(client, {"address": "1 Market St"})
        assert resp.get_json()["error"] == "Gemini API error: quota"


# ============================================================================
# Success
# ============================================================================

class TestAnalyzeSuccess:
    @patch("model_client.requests.post")
    def test_normalized_result_only(self, mock_post, client, openai_key):
        mock_post.return_value = mock_response(200, chat_completion(GOOD_REPLY))

        resp = _post(client, {"address": "  1 Market St  ", "language": "en"})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data == {
            "safety": {"rating": 4, "description": "Well-lit streets."},
            "accessibility": {"rating": 5, "description": "Tram stop at the corner."},
            "convenience": {"rating": 3, "description": get_fallback("en")["convenience"]["description"]},
        }
        prompt = mock_post.call_args.kwargs["json"]["messages"][0]["content"]
        assert "Analyze this location: 1 Market St." in prompt

    @patch("model_client.requests.post")
    def test_fenced_reply_is_accepted(self, mock_post, client, openai_key):
        mock_post.return_value = mock_response(200, chat_completion(f"```json\n{GOOD_REPLY}\n```"))
        resp = _post(client, {"address": "1 Market St"})
        assert resp.status_code == 200
        assert resp.get_json()["safety"]["rating"] == 4

    @patch("model_client.requests.post")
    def test_unknown_language_uses_english(self, mock_post, client, openai_key):
        mock_post.return_value = mock_response(200, chat_completion("{}"))

        resp = _post(client, {"address": "Rue de Rivoli", "language": "fr"})

        assert resp.status_code == 200
        assert resp.get_json() == get_fallback("en")
        prompt = mock_post.call_args.kwargs["json"]["messages"][0]["content"]
        assert prompt.startswith("You are a location analysis expert.")

    @patch("model_client.requests.post")
    def test_chinese_descriptions_are_not_escaped(self, mock_post, client, openai_key):
        mock_post.return_value = mock_response(200, chat_completion("{}"))
        resp = _post(client, {"address": "上海中心", "language": "zh"})
        assert get_fallback("zh")["safety"]["description"] in resp.get_data(as_text=True)

    @patch("model_client.call_gemini", return_value=GOOD_REPLY)
    def test_gemini_provider(self, mock_gemini, client, monkeypatch):
        monkeypatch.setenv("ANALYSIS_PROVIDER", "gemini")
        monkeypatch.setenv("GEMINI_API_KEY", "g-test")

        resp = _post(client, {"address": "1 Market St"})

        assert resp.status_code == 200
        assert resp.get_json()["safety"]["rating"] == 4
        mock_gemini.assert_called_once()


# ============================================================================
# Page and geocoding
# ============================================================================

class TestIndex:
    def test_page_renders(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        html = resp.get_data(as_text=True)
        assert 'id="search-input"' in html
        assert 'id="safety-stars"' in html
        assert 'value="zh"' in html


class TestGeocode:
    @patch("app.geocode_address", return_value={"address": "1 Market St, SF", "lat": 37.79, "lng": -122.39})
    def test_found(self, mock_geocode, client):
        resp = client.get("/api/geocode?q=1+Market+St&language=es")
        assert resp.status_code == 200
        assert resp.get_json()["address"] == "1 Market St, SF"
        mock_geocode.assert_called_once_with("1 Market St", "rentwise_location_app", language="es")

    @patch("app.geocode_address", return_value=None)
    def test_not_found(self, _, client):
        resp = client.get("/api/geocode?q=nowhere")
        assert resp.status_code == 404
        assert "nowhere" in resp.get_json()["error"]

    def test_missing_query(self, client):
        assert client.get("/api/geocode?q=%20").status_code == 400


class TestReverseGeocode:
    @patch("app.reverse_geocode", return_value={"address": "Ferry Building", "lat": 37.7955, "lng": -122.3937})
    def test_found(self, mock_reverse, client):
        resp = client.get("/api/reverse-geocode?lat=37.7955&lng=-122.3937")
        assert resp.status_code == 200
        assert resp.get_json()["address"] == "Ferry Building"
        mock_reverse.assert_called_once_with(37.7955, -122.3937, "rentwise_location_app", language="en")

    @pytest.mark.parametrize("query", ["lat=abc&lng=1", "lat=91&lng=0", "lat=0&lng=181", "lat=nan&lng=0", "lng=1"])
    def test_invalid_coordinates(self, client, query):
        assert client.get(f"/api/reverse-geocode?{query}").status_code == 400

    @patch("app.reverse_geocode", return_value=None)
    def test_not_found(self, _, client):
        assert client.get("/api/reverse-geocode?lat=0&lng=0").status_code == 404
