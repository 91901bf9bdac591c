"""
Per-deployment configuration selected by APP_ENV
"""

import os
from typing import Callable, Dict

from config.app_config import AppConfig
from config.environments.development import get_development_config
from config.environments.production import get_production_config
from utils.logging_config import get_logger

ENVIRONMENTS: Dict[str, Callable[[], AppConfig]] = {
    "development": get_development_config,
    "production": get_production_config,
}


def get_environment_config() -> AppConfig:
    """
    Build the configuration for the current deployment

    APP_ENV picks a profile from ENVIRONMENTS (default 'development'). An
    unknown name is logged and gets the base configuration. CHATBOT_*
    variables are applied on top of whichever profile is used.
    """
    env = os.getenv("APP_ENV", "development").lower()

    factory = ENVIRONMENTS.get(env)
    if factory is None:
        get_logger(__name__).warning(
            f"Unknown APP_ENV '{env}', using base configuration (known: {', '.join(sorted(ENVIRONMENTS))})"
        )
        return AppConfig.load()

    return factory().apply_env_overrides()
