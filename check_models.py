import sys

import google.generativeai as genai
import requests
from dotenv import load_dotenv

from config import load_settings

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"


def list_gemini_models(api_key):
    genai.configure(api_key=api_key)
    # Only the ones that support generate_content
    return [m.name for m in genai.list_models() if "generateContent" in m.supported_generation_methods]


def list_openai_models(api_key, timeout):
    resp = requests.get(OPENAI_MODELS_URL, headers={"Authorization": f"Bearer {api_key}"}, timeout=timeout)
    resp.raise_for_status()
    return sorted(m["id"] for m in resp.json().get("data", []))


def main():
    load_dotenv()
    settings = load_settings()
    if not settings.api_key:
        print(f"{settings.key_name} missing in .env")
        return 1

    print(f"Listing available {settings.provider} models...")
    if settings.provider == "gemini":
        names = list_gemini_models(settings.api_key)
    else:
        try:
            names = list_openai_models(settings.api_key, settings.timeout)
        except requests.HTTPError as e:
            print(f"OpenAI rejected the request ({e.response.status_code}): check {settings.key_name}")
            return 1
    for name in names:
        marker = " (configured)" if name in settings.models else ""
        print(f"- {name}{marker}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
