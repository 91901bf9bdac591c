"""
Development environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, APIConfig


@dataclass
class DevelopmentConfig(AppConfig):
    """Development environment configuration"""

    def __post_init__(self):

        # Development-specific overrides
        self.environment = "development"
        self.debug = True
        self.api = APIConfig.from_secrets()

        # More verbose logging in development
        self.logging.level = "DEBUG"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/dev-app.log"

        # In-memory conversations and a looser rate limit for manual testing
        self.conversation.storage_backend = "memory"
        self.security.rate_limit_max_requests = 20

        # Canned replies are noisy while iterating on prompts
        self.ai.enable_fallback = False


def get_development_config() -> DevelopmentConfig:
    """Get development-specific configuration"""
    return DevelopmentConfig()
