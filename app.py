"""
RentWise Location Analysis App
------------------------------
User picks a location (address search or map click).
App:
  - Geocodes typed text / reverse-geocodes map clicks (geopy, Nominatim)
  - Builds a language-specific prompt (en / zh / es)
  - Calls the configured model (OpenAI or Gemini) for a rating of:
      • Safety
      • Accessibility
      • Convenience & Lifestyle
  - Normalizes the reply: ratings clamped to 1-5, empty descriptions
    replaced with localized placeholders
  - Always answers with a renderable analysis; errors carry a `fallback`

Environment (.env): see config.py
"""

import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, render_template, request

from analysis import (
    SUPPORTED_LANGUAGES,
    build_prompt,
    get_fallback,
    normalize_analysis,
    parse_model_output,
    resolve_language,
)
from config import load_settings
from errors import AnalysisError, MalformedResponseError, ValidationError
from location import geocode_address, reverse_geocode
from model_client import request_analysis

# ------------------------------------------------------------------
# Load environment & logging
# ------------------------------------------------------------------
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("rentwise")

# ------------------------------------------------------------------
# Flask app
# ------------------------------------------------------------------
app = Flask(__name__)
app.json.ensure_ascii = False


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------
def error_payload(message: str, language: str):
    return {"error": message, "fallback": get_fallback(language)}


def analyze_location(address, language):
    """
    Run prompt -> model -> parse -> normalize for one request.

    Returns the normalized analysis, or raises an AnalysisError subclass.
    """
    if not isinstance(address, str) or not address.strip():
        raise ValidationError("Missing or invalid 'address'.")
    address = address.strip()

    settings = load_settings()
    prompt = build_prompt(address, language)
    raw = request_analysis(prompt, settings)

    parsed = parse_model_output(raw)
    if not parsed.ok:
        logger.warning("Unparseable model output for %r: %s", address, parsed.error)
        raise MalformedResponseError("Model did not return valid JSON.")
    return normalize_analysis(parsed.value, language)


def _parse_coordinate(name: str, limit: float):
    raw = request.args.get(name, "")
    try:
        value = float(raw)
    except ValueError:
        return None
    if not -limit <= value <= limit:
        return None
    return value


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------
@app.route("/", methods=["GET"])
def index():
    return render_template("index.html", languages=SUPPORTED_LANGUAGES)


@app.route("/api/analyze", methods=["POST"])
def analyze():
    language = "en"
    try:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object.")

        language = resolve_language(body.get("language", "en"))
        result = analyze_location(body.get("address", ""), language)
        return jsonify(result)
    except AnalysisError as e:
        logger.warning("Analysis failed (%s): %s", type(e).__name__, e.message[:500])
        return jsonify(error_payload(e.message, language)), e.status_code
    except Exception as e:
        logger.exception("Unexpected error while analyzing location")
        return jsonify(error_payload(str(e) or "Unexpected server error", "en")), 500


@app.route("/api/geocode", methods=["GET"])
def geocode():
    query = request.args.get("q", "").strip()
    if not query:
        return jsonify({"error": "Missing 'q'."}), 400

    language = resolve_language(request.args.get("language", "en"))
    place = geocode_address(query, load_settings().geocoder_user_agent, language=language)
    if place is None:
        return jsonify({"error": f"Location not found: {query}"}), 404
    return jsonify(place)


@app.route("/api/reverse-geocode", methods=["GET"])
def reverse():
    lat = _parse_coordinate("lat", 90.0)
    lng = _parse_coordinate("lng", 180.0)
    if lat is None or lng is None:
        return jsonify({"error": "Invalid 'lat'/'lng'."}), 400

    language = resolve_language(request.args.get("language", "en"))
    place = reverse_geocode(lat, lng, load_settings().geocoder_user_agent, language=language)
    if place is None:
        return jsonify({"error": "Location not found."}), 404
    return jsonify(place)


# ------------------------------------------------------------------
# Main
# ------------------------------------------------------------------
if __name__ == "__main__":
    # Development server (debug); for production use Gunicorn
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=True)
