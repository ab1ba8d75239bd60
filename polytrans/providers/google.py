"""
Google Translate provider.

Uses the public translate.googleapis.com endpoint, so it needs no API key
and is always configured. Every string in the content map is translated
recursively; nested structure and non-string values are preserved.
"""

from typing import Any, Dict

import httpx

from polytrans.exceptions import ProviderError
from polytrans.logger import get_logger
from polytrans.providers.base import TranslationProvider, TranslationResult, describe_http_error

logger = get_logger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

SUPPORTED_LANGUAGES = {
    'af', 'sq', 'ar', 'az', 'eu', 'bn', 'be', 'bg', 'ca', 'zh-cn', 'zh-tw', 'hr',
    'cs', 'da', 'nl', 'en', 'eo', 'et', 'tl', 'fi', 'fr', 'gl', 'ka', 'de', 'el',
    'gu', 'ht', 'iw', 'hi', 'hu', 'is', 'id', 'ga', 'it', 'ja', 'kn', 'ko', 'la',
    'lv', 'lt', 'mk', 'ms', 'mt', 'no', 'fa', 'pl', 'pt', 'ro', 'ru', 'sr', 'sk',
    'sl', 'es', 'sw', 'sv', 'ta', 'te', 'th', 'tr', 'uk', 'ur', 'vi', 'cy', 'yi',
}


class GoogleProvider(TranslationProvider):
    id = "google"
    name = "Google Translate"
    description = "Simple, fast translation using Google Translate public API. No API key required."

    def is_configured(self, settings) -> bool:
        return True

    def supported_languages(self):
        return set(SUPPORTED_LANGUAGES)

    def translate(self, content: Dict[str, Any], source_lang: str, target_lang: str, settings) -> TranslationResult:
        self._check_content(content)
        logger.info(f"Google Translate: translating from {source_lang} to {target_lang}")

        try:
            with self.http_client(settings.provider_timeout) as client:
                translated = self._deep_translate(client, settings.google.api_url, content, source_lang, target_lang)
        except ProviderError as e:
            logger.error(f"Google Translate error: {e}")
            return TranslationResult.fail(str(e))

        return TranslationResult.ok(translated)

    def _deep_translate(self, client: httpx.Client, api_url: str, data: Any, source_lang: str, target_lang: str) -> Any:
        """Recursively translate all string values."""
        if isinstance(data, dict):
            return {
                key: self._deep_translate(client, api_url, value, source_lang, target_lang)
                for key, value in data.items()
            }
        if isinstance(data, list):
            return [self._deep_translate(client, api_url, value, source_lang, target_lang) for value in data]
        if isinstance(data, str):
            return self._translate_text(client, api_url, data, source_lang, target_lang)
        return data

    def _translate_text(self, client: httpx.Client, api_url: str, text: str, source_lang: str, target_lang: str) -> str:
        # Skip empty strings
        if not text.strip():
            return text

        params = {
            "client": "gtx",
            "sl": source_lang,
            "tl": target_lang,
            "dt": "t",
            "q": text,
        }

        try:
            response = client.get(api_url, params=params, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(describe_http_error(e, "Google Translate"), code="http_error")
        except httpx.TimeoutException:
            raise ProviderError("Google Translate request timeout", code="timeout")
        except httpx.HTTPError as e:
            raise ProviderError(f"Google Translate request failed: {e}", code="network_error")
        except ValueError:
            raise ProviderError("Google Translate returned invalid JSON", code="invalid_response")

        # Response shape: [[["translated", "original", ...], ...], ...]
        if isinstance(result, list) and result and isinstance(result[0], list):
            segments = [segment[0] for segment in result[0] if isinstance(segment, list) and segment and isinstance(segment[0], str)]
            if segments:
                return "".join(segments)

        raise ProviderError("Unexpected Google Translate response format", code="invalid_response")
