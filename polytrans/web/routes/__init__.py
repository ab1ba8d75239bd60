"""Route blueprints for the web application."""

from .translation import translation_bp
from .status import status_bp
from .posts import posts_bp
from .jobs import jobs_bp
from .settings import settings_bp

__all__ = [
    "translation_bp",
    "status_bp",
    "posts_bp",
    "jobs_bp",
    "settings_bp",
]
