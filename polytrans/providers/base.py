"""
Translation provider contract.

Every backend (built-in or registered by a plugin) subclasses
TranslationProvider. Ordinary API failures are reported through a failed
TranslationResult, never raised; only contract violations raise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set, TYPE_CHECKING

import httpx

from polytrans.exceptions import ErrorKind

if TYPE_CHECKING:
    from polytrans.config import Settings


@dataclass(frozen=True)
class TranslationResult:
    """Outcome of one provider call: translated fields or an error, never both."""

    success: bool
    translated_content: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    def __post_init__(self):
        if self.success and (self.translated_content is None or self.error is not None):
            raise ValueError("A successful result carries translated content and no error")
        if not self.success and (self.translated_content is not None or not self.error):
            raise ValueError("A failed result carries an error message and no content")

    @classmethod
    def ok(cls, translated_content: Dict[str, Any]) -> "TranslationResult":
        return cls(success=True, translated_content=translated_content)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.PROVIDER) -> "TranslationResult":
        return cls(success=False, error=error, error_kind=kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "translated_content": self.translated_content,
            "error": self.error,
        }


class TranslationProvider(ABC):
    """Base class for translation backends."""

    id: str = ""
    name: str = ""
    description: str = ""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        # Tests and embedders may route outbound calls through a custom transport
        self._transport = transport

    def http_client(self, timeout: float) -> httpx.Client:
        return httpx.Client(timeout=get_httpx_timeout(timeout), transport=self._transport)

    @abstractmethod
    def is_configured(self, settings: "Settings") -> bool:
        """Whether the provider can run with these settings."""

    @abstractmethod
    def translate(
        self,
        content: Dict[str, Any],
        source_lang: str,
        target_lang: str,
        settings: "Settings",
    ) -> TranslationResult:
        """Translate a map of fields (title, content, excerpt, meta, ...)."""

    def supported_languages(self) -> Set[str]:
        """Language codes this provider handles; empty means all."""
        return set()

    def _check_content(self, content: Any):
        if not isinstance(content, dict):
            raise TypeError(f"{self.id} provider expects a mapping of fields, got {type(content).__name__}")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (total read budget) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 30.0),
            read=timeout_config.get('read', 30.0),
            pool=timeout_config.get('pool', 10.0),
        )
    timeout_value = float(timeout_config) if timeout_config else 30.0
    return httpx.Timeout(
        connect=min(10.0, timeout_value),
        write=timeout_value,
        read=timeout_value,
        pool=min(10.0, timeout_value),
    )


def describe_http_error(e: httpx.HTTPStatusError, provider: str) -> str:
    """Build a readable message from an HTTP error response."""
    status_code = e.response.status_code
    error_text = "Unknown error"

    try:
        error_json = e.response.json()
        if isinstance(error_json, dict) and "error" in error_json:
            error_detail = error_json["error"]
            if isinstance(error_detail, dict):
                error_text = error_detail.get("message", str(error_detail))
            else:
                error_text = str(error_detail)
    except ValueError:
        error_text = e.response.text[:500] if e.response.text else "No details"

    if status_code == 429:
        return f"{provider} rate limit exceeded (429): {error_text}"
    return f"{provider} API error ({status_code}): {error_text}"
