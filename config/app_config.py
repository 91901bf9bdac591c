"""
Unified Configuration System for the portfolio assistant

This module provides a centralized configuration system that consolidates all engine settings,
supports environment-based overrides, and provides type-safe configuration access.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
import streamlit as st
import os
from pathlib import Path


@dataclass
class APIConfig:
    """API configuration settings"""
    openai_api_key: str = ""
    langfuse_secret_key: str = ""
    langfuse_public_key: str = ""
    langfuse_host: str = "https://cloud.langfuse.com"

    @classmethod
    def from_env(cls) -> 'APIConfig':
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            langfuse_secret_key=os.getenv("LANGFUSE_SECRET_KEY", ""),
            langfuse_public_key=os.getenv("LANGFUSE_PUBLIC_KEY", ""),
            langfuse_host=os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")
        )

    @classmethod
    def from_secrets(cls) -> 'APIConfig':
        """Load API config from Streamlit secrets"""
        # In test environment, prefer environment variables
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            return cls.from_env()

        try:
            return cls(
                openai_api_key=st.secrets.get("OPENAI_API_KEY", "") or os.getenv("OPENAI_API_KEY", ""),
                langfuse_secret_key=st.secrets.get("LANGFUSE_SECRET_KEY", ""),
                langfuse_public_key=st.secrets.get("LANGFUSE_PUBLIC_KEY", ""),
                langfuse_host=st.secrets.get("LANGFUSE_HOST", "https://cloud.langfuse.com")
            )
        except Exception:
            # No secrets.toml outside a Streamlit deployment
            return cls.from_env()


@dataclass
class AIConfig:
    """Language model provider configuration"""
    provider: str = "openai"
    model: str = "gpt-3.5-turbo"
    max_tokens: int = 500
    temperature: float = 0.7
    enable_fallback: bool = True
    timeout_seconds: float = 20.0
    total_timeout_seconds: float = 30.0
    max_retries: int = 2
    circuit_failure_threshold: int = 5
    circuit_recovery_timeout: int = 60

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for LangChain compatibility"""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout_seconds
        }


@dataclass
class ConversationConfig:
    """Conversation state and persistence configuration"""
    max_messages: int = 50
    session_timeout_minutes: int = 30
    approaching_limit_ratio: float = 0.8
    reset_ratio: float = 1.5
    recent_window: int = 8
    history_window: int = 6
    enable_persistence: bool = True
    storage_backend: str = "memory"  # "memory", "sqlite", "streamlit" or "none"
    storage_path: str = "data/conversations.db"
    storage_key: str = "chatbot_conversation"

    @property
    def session_timeout_seconds(self) -> int:
        return self.session_timeout_minutes * 60


@dataclass
class SecurityConfig:
    """Input validation and rate limiting configuration"""
    max_message_length: int = 500
    max_request_length: int = 1000
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: int = 60
    enable_input_sanitization: bool = True

    @property
    def rate_limit_window_ms(self) -> int:
        return self.rate_limit_window_seconds * 1000


@dataclass
class FeatureFlags:
    """Feature switches"""
    enable_ai: bool = True
    enable_search: bool = True


@dataclass
class AssistantConfig:
    """Assistant persona and canned texts"""
    name: str = "Mohd Uwaish"
    knowledge_data_dir: str = ""  # empty means the bundled dataset
    welcome_message: str = (
        "Hi! I'm {name}. I'm here to answer any questions about my skills, "
        "experience, or projects. What would you like to know?"
    )
    fallback_responses: Dict[str, str] = field(default_factory=lambda: {
        "greeting": "Hello! I'm here to help you learn about {name}. Feel free to ask about skills, experience, or projects!",
        "skills": "{name} has expertise in various technologies. You can find detailed information about the skills in the portfolio.",
        "experience": "You can learn about {name}'s work experience and achievements throughout the career.",
        "projects": "{name} has worked on several interesting projects. Check out the projects section for more details.",
        "contact": "You can reach out to {name} through the contact information provided in the portfolio.",
        "unknown": "I'm not sure I understand. Could you please rephrase your question or ask about skills, experience, or projects?",
    })

    def render_welcome(self) -> str:
        return self.welcome_message.format(name=self.name)


@dataclass
class LoggingConfig:
    """Logging and monitoring configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_file_logging: bool = False
    log_file: str = "logs/app.log"
    enable_langfuse_tracing: bool = True


@dataclass
class AppConfig:
    """Main application configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)
    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Environment settings
    environment: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration with environment overrides"""
        config = cls()

        # Load API configuration from secrets/environment
        config.api = APIConfig.from_secrets()
        config.apply_env_overrides()

        # Apply environment-specific overrides
        if config.environment == "production":
            config.debug = False
            config.logging.level = "WARNING"
        elif config.environment == "development":
            config.debug = True
            config.logging.level = "DEBUG"

        return config

    def apply_env_overrides(self) -> 'AppConfig':
        """Apply CHATBOT_* environment variables on top of the current values"""
        if os.getenv("CHATBOT_AI_MODEL"):
            self.ai.model = os.getenv("CHATBOT_AI_MODEL")
        if os.getenv("CHATBOT_STORAGE_BACKEND"):
            self.conversation.storage_backend = os.getenv("CHATBOT_STORAGE_BACKEND")
        return self

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        # A missing key only degrades the engine to knowledge-base answers
        if not self.api.openai_api_key:
            errors.append("OpenAI API key not configured - AI responses disabled")

        if not 0 <= self.ai.temperature <= 2:
            errors.append(f"AI temperature out of range: {self.ai.temperature}")

        if self.ai.max_tokens <= 0:
            errors.append("AI max_tokens must be positive")

        if not 0 < self.ai.timeout_seconds <= self.ai.total_timeout_seconds:
            errors.append("ai.timeout_seconds must be within (0, total_timeout_seconds]")

        if self.conversation.max_messages <= 5:
            errors.append("conversation.max_messages must be greater than 5")

        if self.conversation.storage_backend not in ("memory", "sqlite", "streamlit", "none"):
            errors.append(f"Unknown storage backend: {self.conversation.storage_backend}")

        if not 0 < self.security.max_message_length <= self.security.max_request_length:
            errors.append("security.max_message_length must be within (0, max_request_length]")

        if self.security.rate_limit_max_requests <= 0 or self.security.rate_limit_window_seconds <= 0:
            errors.append("Rate limit settings must be positive")

        if self.logging.enable_file_logging:
            log_dir = Path(self.logging.log_file).parent
            if not log_dir.exists():
                log_dir.mkdir(parents=True, exist_ok=True)

        return errors

    def get_langfuse_config(self) -> Dict[str, str]:
        """Get Langfuse configuration"""
        return {
            "secret_key": self.api.langfuse_secret_key,
            "public_key": self.api.langfuse_public_key,
            "host": self.api.langfuse_host
        }


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = AppConfig.load()

        # Validate configuration
        errors = _config.validate()
        if errors:
            import warnings
            for error in errors:
                warnings.warn(f"Configuration error: {error}")

    return _config


def reload_config() -> AppConfig:
    """Reload configuration (useful for testing)"""
    global _config
    _config = None
    return get_config()
