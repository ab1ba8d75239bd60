"""
Callback delivery: POST a translated result to the target endpoint.

Delivery never raises for network or HTTP problems; the outcome says what
happened and the caller decides what to record.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from polytrans.exceptions import DeliveryError, ErrorKind
from polytrans.logger import get_logger
from polytrans.providers.base import get_httpx_timeout
from polytrans.translation.auth import apply_auth

logger = get_logger(__name__)


@dataclass(frozen=True)
class CallbackEnvelope:
    source_language: str
    target_language: str
    original_post_id: Any
    translated: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_language": self.source_language,
            "target_language": self.target_language,
            "original_post_id": self.original_post_id,
            "translated": self.translated,
        }


@dataclass(frozen=True)
class DeliveryOutcome:
    success: bool
    status_code: Optional[int] = None
    created_post_id: Optional[int] = None
    error: Optional[DeliveryError] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


class CallbackDelivery:
    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        self._transport = transport

    def deliver(self, envelope: CallbackEnvelope, endpoint: str, settings) -> DeliveryOutcome:
        headers, params, body = apply_auth(
            settings.auth,
            {"Content-Type": "application/json"},
            {},
            envelope.to_dict(),
        )

        logger.info(f"Delivering translation of {envelope.original_post_id} ({envelope.target_language}) to {endpoint}")

        try:
            with httpx.Client(
                timeout=get_httpx_timeout(settings.delivery_timeout),
                verify=settings.tls_verify,
                transport=self._transport,
            ) as client:
                response = client.post(endpoint, params=params, headers=headers, json=body)
        except httpx.TimeoutException:
            return self._failure(DeliveryError(f"Timed out delivering to {endpoint}", code="timeout"))
        except httpx.HTTPError as e:
            return self._failure(DeliveryError(f"Could not reach {endpoint}: {e}", code="network_error"))
        except httpx.InvalidURL as e:
            return self._failure(DeliveryError(f"Invalid target endpoint {endpoint!r}: {e}", code="invalid_url"))

        if not response.is_success:
            return self._failure(DeliveryError(
                f"Target endpoint returned HTTP {response.status_code}: {response.text[:500]}",
                code="http_error",
                details={"status_code": response.status_code},
            ), response.status_code)

        created_post_id = None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            created_post_id = payload.get("created_post_id")

        logger.info(f"Translation delivered to {endpoint} (HTTP {response.status_code}, post {created_post_id})")
        return DeliveryOutcome(success=True, status_code=response.status_code, created_post_id=created_post_id)

    def _failure(self, error: DeliveryError, status_code: int = None) -> DeliveryOutcome:
        logger.error(f"Translation delivery failed: {error.message}")
        return DeliveryOutcome(success=False, status_code=status_code, error=error)
