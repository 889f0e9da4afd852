"""Flask route blueprints for the mockdefense client application."""

from mockdefense.client.routes.config import get_config, init_config
from mockdefense.client.routes.defense import defense_bp
from mockdefense.client.routes.health import health_bp

__all__ = [
    "defense_bp",
    "health_bp",
    "init_config",
    "get_config",
]
