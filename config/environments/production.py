"""
Production environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, APIConfig


@dataclass
class ProductionConfig(AppConfig):
    """Production environment configuration"""

    def __post_init__(self):

        # Production-specific overrides
        self.environment = "production"
        self.debug = False
        self.api = APIConfig.from_secrets()

        # Production logging - less verbose, focus on errors
        self.logging.level = "INFO"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/prod-app.log"

        # Conversations survive process restarts
        self.conversation.storage_backend = "sqlite"
        self.conversation.storage_path = "data/conversations.db"

        # Production LLM settings - more conservative
        self.ai.temperature = 0.3
        self.ai.timeout_seconds = 15.0

        self.security.rate_limit_max_requests = 10


def get_production_config() -> ProductionConfig:
    """Get production-specific configuration"""
    return ProductionConfig()
