"""
Shared-secret authentication between sites.

Both sides configure the same AuthenticationConfig. The sender puts the
secret in exactly one place chosen by `method`; the receiver reads it
from that place only:

    get_param      ?secret=<secret>
    header_bearer  Authorization: Bearer <secret>
    header_custom  <custom_header>: <secret>
    post_param     {"secret": <secret>, ...} in the JSON body
    none           nothing is sent or checked

An optional IP allowlist (exact addresses or CIDR ranges) is checked on
the receiving side after the secret.
"""

import hmac
import ipaddress
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from polytrans.config import AuthenticationConfig
from polytrans.exceptions import AuthenticationError
from polytrans.logger import get_logger

logger = get_logger(__name__)

SECRET_FIELD = "secret"
BEARER_PREFIX = "bearer "


def apply_auth(auth: AuthenticationConfig, headers: Dict[str, str], params: Dict[str, str],
               body: Dict[str, Any]) -> Tuple[Dict[str, str], Dict[str, str], Dict[str, Any]]:
    """Return copies of headers, query params and body carrying the secret."""
    headers, params, body = dict(headers), dict(params), dict(body)
    if not auth.enabled:
        return headers, params, body

    if auth.method == "get_param":
        params[SECRET_FIELD] = auth.secret
    elif auth.method == "header_bearer":
        headers["Authorization"] = f"Bearer {auth.secret}"
    elif auth.method == "header_custom":
        headers[auth.custom_header] = auth.secret
    elif auth.method == "post_param":
        body[SECRET_FIELD] = auth.secret
    return headers, params, body


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def extract_secret(auth: AuthenticationConfig, headers: Mapping[str, str], args: Mapping[str, str],
                   body: Any) -> Optional[str]:
    """Read the secret from the configured location only."""
    if auth.method == "get_param":
        return args.get(SECRET_FIELD)
    if auth.method == "header_bearer":
        value = _header(headers, "Authorization") or ""
        if value[:len(BEARER_PREFIX)].lower() == BEARER_PREFIX:
            return value[len(BEARER_PREFIX):]
        return None
    if auth.method == "header_custom":
        return _header(headers, auth.custom_header)
    if auth.method == "post_param":
        if isinstance(body, dict) and body.get(SECRET_FIELD) is not None:
            return str(body[SECRET_FIELD])
    return None


def verify_secret(auth: AuthenticationConfig, headers: Mapping[str, str], args: Mapping[str, str],
                  body: Any) -> bool:
    if not auth.enabled:
        return True

    provided = extract_secret(auth, headers, args, body)
    if not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), auth.secret.encode("utf-8"))


def client_ip(headers: Mapping[str, str], remote_addr: Optional[str]) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = _header(headers, "X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return remote_addr or "0.0.0.0"


def ip_allowed(allowed_ips: Iterable[str], ip: str) -> bool:
    allowed_ips = [entry for entry in allowed_ips if entry]
    if not allowed_ips:
        return True

    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        logger.warning(f"Unparsable client IP: {ip}")
        return False

    for entry in allowed_ips:
        try:
            if "/" in entry:
                if address in ipaddress.ip_network(entry, strict=False):
                    return True
            elif address == ipaddress.ip_address(entry):
                return True
        except ValueError:
            logger.warning(f"Ignoring invalid allowlist entry: {entry}")
    return False


def verify_request(auth: AuthenticationConfig, request) -> None:
    """
    Authenticate a Flask request. Raises AuthenticationError on failure.

    The error never says which check failed.
    """
    body = request.get_json(silent=True) if auth.method == "post_param" else None
    if not verify_secret(auth, request.headers, request.args, body):
        logger.info("Translation receiver authentication failed")
        raise AuthenticationError("Forbidden", code="invalid_secret")

    ip = client_ip(request.headers, request.remote_addr)
    if not ip_allowed(auth.allowed_ips, ip):
        logger.warning(f"Translation receiver IP restriction failed for IP: {ip}")
        raise AuthenticationError("Forbidden", code="ip_not_allowed")
