import copy
import json
import os
import re
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional

from polytrans.core import database as db
from polytrans.core.schema import initialize_database
from polytrans.exceptions import ConfigError
from polytrans.logger import apply_configured_mode, get_logger, LOG_MODES

logger = get_logger(__name__)

PROVIDER_NAME_PATTERN = r"^[a-zA-Z0-9_-]+$"

# Secret delivery methods: none, query parameter, bearer header, custom header, body field
AUTH_METHODS = ("none", "get_param", "header_bearer", "header_custom", "post_param")
DEFAULT_SECRET_HEADER = "x-polytrans-secret"

# Initial status of a translated post; "source" copies the original's status
TRANSLATED_POST_STATUSES = ("draft", "pending", "publish", "private", "source")

PRODUCTION_ENVIRONMENTS = ("prod", "production")

# Default configuration template
DEFAULT_CONFIG = {
    "translation_provider": "google",
    "provider_timeout": 30,
    "delivery_timeout": 30,
    "dispatch_timeout": 10,
    "verify_ssl": None,
    "auth": {
        "secret": "",
        "method": "header_bearer",
        "custom_header": DEFAULT_SECRET_HEADER,
        "allowed_ips": [],
    },
    "google": {
        "api_url": "https://translate.googleapis.com/translate_a/single",
    },
    "openai": {
        "api_key": "",
        "api_url": "https://api.openai.com/v1",
        "assistants": {},
        "path_rules": [],
        "poll_interval": 1.0,
        "max_wait": 120,
    },
    "languages": {},
    "translation_endpoint": "",
    "receiver_endpoint": "",
    "allowed_targets": [],
    "edit_link_base_url": "",
    "reviewer_email_title": "Translation Review Required",
    "reviewer_email": "A translation is ready for review.",
    "log_mode": "info",
}


# ============================================================
# Typed settings
# ============================================================

def _positive_number(raw: Dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number", code="invalid_setting", details={"field": key})
    if value <= 0:
        raise ConfigError(f"'{key}' must be greater than zero", code="invalid_setting", details={"field": key})
    return value


@dataclass(frozen=True)
class AuthenticationConfig:
    """Shared secret and where it travels. Both sides must agree on it."""

    secret: str = ""
    method: str = "header_bearer"
    custom_header: str = DEFAULT_SECRET_HEADER
    allowed_ips: List[str] = field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return bool(self.secret) and self.method != "none"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AuthenticationConfig":
        method = raw.get("method") or "header_bearer"
        if method not in AUTH_METHODS:
            raise ConfigError(
                f"Unknown secret method: {method}",
                code="invalid_setting",
                details={"field": "auth.method", "allowed": list(AUTH_METHODS)},
            )
        allowed_ips = raw.get("allowed_ips") or []
        if not isinstance(allowed_ips, list):
            raise ConfigError("'auth.allowed_ips' must be a list", code="invalid_setting")
        return cls(
            secret=str(raw.get("secret") or ""),
            method=method,
            custom_header=(raw.get("custom_header") or DEFAULT_SECRET_HEADER).strip(),
            allowed_ips=[str(ip).strip() for ip in allowed_ips if str(ip).strip()],
        )


@dataclass(frozen=True)
class GoogleSettings:
    api_url: str = DEFAULT_CONFIG["google"]["api_url"]

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "GoogleSettings":
        return cls(api_url=raw.get("api_url") or DEFAULT_CONFIG["google"]["api_url"])


@dataclass(frozen=True)
class OpenAISettings:
    api_key: str = ""
    api_url: str = DEFAULT_CONFIG["openai"]["api_url"]
    assistants: Dict[str, str] = field(default_factory=dict)
    path_rules: List[Dict[str, str]] = field(default_factory=list)
    poll_interval: float = 1.0
    max_wait: float = 120

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "OpenAISettings":
        assistants = raw.get("assistants") or {}
        if not isinstance(assistants, dict):
            raise ConfigError("'openai.assistants' must be a mapping", code="invalid_setting")
        path_rules = raw.get("path_rules") or []
        if not isinstance(path_rules, list) or not all(isinstance(r, dict) for r in path_rules):
            raise ConfigError("'openai.path_rules' must be a list of rules", code="invalid_setting")
        for rule in path_rules:
            if not rule.get("source") or not rule.get("target"):
                raise ConfigError(
                    "Every path rule needs 'source' and 'target'",
                    code="invalid_setting",
                    details={"rule": rule},
                )
        return cls(
            api_key=str(raw.get("api_key") or ""),
            api_url=(raw.get("api_url") or DEFAULT_CONFIG["openai"]["api_url"]).rstrip("/"),
            assistants={str(k): str(v or "") for k, v in assistants.items()},
            path_rules=[dict(r) for r in path_rules],
            poll_interval=_positive_number(raw, "poll_interval", 1.0),
            max_wait=_positive_number(raw, "max_wait", 120),
        )


@dataclass(frozen=True)
class LanguageSettings:
    status: str = "draft"
    reviewer: Optional[int] = None

    @classmethod
    def from_dict(cls, code: str, raw: Dict[str, Any]) -> "LanguageSettings":
        status = raw.get("status") or "draft"
        if status not in TRANSLATED_POST_STATUSES:
            raise ConfigError(
                f"Invalid post status '{status}' for language {code}",
                code="invalid_setting",
                details={"field": f"languages.{code}.status"},
            )
        reviewer = raw.get("reviewer")
        if reviewer in ("", None):
            reviewer = None
        else:
            try:
                reviewer = int(reviewer)
            except (TypeError, ValueError):
                raise ConfigError(
                    f"Reviewer for language {code} must be a user id",
                    code="invalid_setting",
                    details={"field": f"languages.{code}.reviewer"},
                )
        return cls(status=status, reviewer=reviewer)


@dataclass(frozen=True)
class Settings:
    """Validated, read-only view of the stored configuration."""

    translation_provider: str = "google"
    provider_timeout: float = 30
    delivery_timeout: float = 30
    dispatch_timeout: float = 10
    verify_ssl: Optional[bool] = None
    auth: AuthenticationConfig = field(default_factory=AuthenticationConfig)
    google: GoogleSettings = field(default_factory=GoogleSettings)
    openai: OpenAISettings = field(default_factory=OpenAISettings)
    languages: Dict[str, LanguageSettings] = field(default_factory=dict)
    translation_endpoint: str = ""
    receiver_endpoint: str = ""
    allowed_targets: List[str] = field(default_factory=list)
    edit_link_base_url: str = ""
    reviewer_email_title: str = DEFAULT_CONFIG["reviewer_email_title"]
    reviewer_email: str = DEFAULT_CONFIG["reviewer_email"]
    log_mode: str = "info"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Settings":
        raw = merge_with_defaults(raw or {})

        provider = raw.get("translation_provider") or "google"
        if not re.match(PROVIDER_NAME_PATTERN, provider):
            raise ConfigError(
                f"Invalid translation provider id: {provider}",
                code="invalid_setting",
                details={"field": "translation_provider"},
            )

        log_mode = raw.get("log_mode") or "info"
        if log_mode not in LOG_MODES:
            raise ConfigError(f"Unknown log mode: {log_mode}", code="invalid_setting")

        verify_ssl = raw.get("verify_ssl")
        if verify_ssl is not None and not isinstance(verify_ssl, bool):
            raise ConfigError("'verify_ssl' must be true, false or null", code="invalid_setting")

        languages = raw.get("languages") or {}
        if not isinstance(languages, dict):
            raise ConfigError("'languages' must be a mapping", code="invalid_setting")

        return cls(
            translation_provider=provider,
            provider_timeout=_positive_number(raw, "provider_timeout", 30),
            delivery_timeout=_positive_number(raw, "delivery_timeout", 30),
            dispatch_timeout=_positive_number(raw, "dispatch_timeout", 10),
            verify_ssl=verify_ssl,
            auth=AuthenticationConfig.from_dict(raw.get("auth") or {}),
            google=GoogleSettings.from_dict(raw.get("google") or {}),
            openai=OpenAISettings.from_dict(raw.get("openai") or {}),
            languages={
                code: LanguageSettings.from_dict(code, value or {})
                for code, value in languages.items()
            },
            translation_endpoint=(raw.get("translation_endpoint") or "").strip(),
            receiver_endpoint=(raw.get("receiver_endpoint") or "").strip(),
            allowed_targets=list(raw.get("allowed_targets") or []),
            edit_link_base_url=(raw.get("edit_link_base_url") or "").strip(),
            reviewer_email_title=raw.get("reviewer_email_title") or DEFAULT_CONFIG["reviewer_email_title"],
            reviewer_email=raw.get("reviewer_email") or DEFAULT_CONFIG["reviewer_email"],
            log_mode=log_mode,
        )

    def language(self, code: str) -> LanguageSettings:
        return self.languages.get(code) or LanguageSettings()

    @property
    def tls_verify(self) -> bool:
        """Verify TLS in production-like environments unless forced by settings."""
        if self.verify_ssl is not None:
            return self.verify_ssl
        return os.environ.get("POLYTRANS_ENV", "").lower() in PRODUCTION_ENVIRONMENTS

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def merge_with_defaults(raw: Dict[str, Any], defaults: Dict[str, Any] = None) -> Dict[str, Any]:
    """Deep-merge stored config over DEFAULT_CONFIG so missing keys get defaults."""
    defaults = DEFAULT_CONFIG if defaults is None else defaults
    merged = copy.deepcopy(defaults)
    for key, value in raw.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict) and merged[key]:
            merged[key] = merge_with_defaults(value, merged[key])
        else:
            merged[key] = value
    return merged


def mask_secrets(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of config with secrets replaced for display."""
    masked = copy.deepcopy(config)
    if masked.get("auth", {}).get("secret"):
        masked["auth"]["secret"] = "********"
    if masked.get("openai", {}).get("api_key"):
        masked["openai"]["api_key"] = "********"
    return masked


# ============================================================
# Persistence
# ============================================================

def initialize_app():
    """
    Initialize the application.
    Creates the database and stores the default configuration on first run.
    """
    logger.info("Initializing application...")

    initialize_database()
    logger.info("Database initialized")

    existing_config = db.get_app_config('config')
    if not existing_config:
        logger.info("No config in database, initializing default config")
        save_config(DEFAULT_CONFIG)

    apply_configured_mode(load_config().get("log_mode") or "info")
    logger.info("Application initialization complete")


def load_config() -> Dict[str, Any]:
    """Load the raw configuration from database, merged with defaults."""
    config_json = db.get_app_config('config')
    if not config_json:
        logger.debug("No config in database, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        config = json.loads(config_json)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse config from database: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)
    logger.debug("Configuration loaded from database")
    return merge_with_defaults(config)


def load_settings() -> Settings:
    """Load and validate the configuration. Raises ConfigError when invalid."""
    return Settings.from_dict(load_config())


def save_config(config: Dict[str, Any]):
    """Validate and save the configuration to database."""
    Settings.from_dict(config)
    config_json = json.dumps(config, ensure_ascii=False)
    db.set_app_config('config', config_json)
    logger.info("Configuration saved to database")


def factory_reset():
    """
    Perform a factory reset.
    WARNING: This will delete all data and reset to defaults.
    """
    logger.warning("Performing factory reset...")

    if db.DB_FILE.exists():
        db.DB_FILE.unlink()
        logger.info("Database deleted")

    initialize_app()
    logger.info("Factory reset complete")
