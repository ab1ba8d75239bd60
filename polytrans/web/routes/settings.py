"""Settings management API routes."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, jsonify, request

import polytrans.config as config
from polytrans.config import AUTH_METHODS, TRANSLATED_POST_STATUSES
from polytrans.exceptions import ConfigError
from polytrans.logger import apply_configured_mode, get_logger, LOG_MODES
from polytrans.web.services import get_services

settings_bp = Blueprint("settings", __name__)
logger = get_logger(__name__)

MASK = "********"


@settings_bp.get("/")
def get_settings():
    """Return current configuration (secrets masked) with choices for the form."""
    services = get_services()
    return jsonify({
        "config": config.mask_secrets(config.load_config()),
        "meta": {
            "providers": [
                {"id": provider_id, "name": name}
                for provider_id, name in services.registry.choices().items()
            ],
            "auth_methods": list(AUTH_METHODS),
            "post_statuses": list(TRANSLATED_POST_STATUSES),
            "log_modes": list(LOG_MODES),
        },
    })


@settings_bp.put("/")
def update_settings():
    """Validate and save configuration."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("config"), dict):
        return jsonify({"error": "Request must contain a 'config' object"}), 400

    current_config = config.load_config()
    new_config = config.merge_with_defaults(_unmask(data["config"], current_config), current_config)

    provider_id = new_config.get("translation_provider")
    if get_services().registry.resolve(provider_id) is None:
        return jsonify({"error": f"Unknown translation provider: {provider_id}"}), 400

    try:
        config.save_config(new_config)
    except ConfigError as e:
        logger.warning(f"Rejected settings update: {e.message}")
        return jsonify(e.to_dict()), 400

    apply_configured_mode(new_config.get("log_mode") or "info")
    logger.info("Settings updated successfully")

    return jsonify({"message": "Settings updated successfully", "config": config.mask_secrets(new_config)})


def _unmask(new_config: Dict[str, Any], current_config: Dict[str, Any]) -> Dict[str, Any]:
    """Keep stored secrets when the form sends back the masked placeholder."""
    for section, key in (("auth", "secret"), ("openai", "api_key")):
        value = (new_config.get(section) or {}).get(key)
        if value == MASK:
            new_config[section][key] = current_config.get(section, {}).get(key, "")
    return new_config
