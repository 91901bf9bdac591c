"""
Tests for configuration system
"""

import pytest

import config.app_config as app_config_module
from config.app_config import (
    AppConfig, APIConfig, AIConfig, ConversationConfig, SecurityConfig,
    AssistantConfig, get_config, reload_config
)


class TestAPIConfig:
    """Test API configuration"""

    def test_from_secrets_fallback_to_env(self, monkeypatch):
        """Test fallback to environment variables when secrets unavailable"""
        monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")
        monkeypatch.setenv("LANGFUSE_SECRET_KEY", "test-langfuse-secret")
        monkeypatch.setenv("LANGFUSE_PUBLIC_KEY", "test-langfuse-public")
        monkeypatch.delenv("LANGFUSE_HOST", raising=False)

        config = APIConfig.from_secrets()

        assert config.openai_api_key == "test-openai-key"
        assert config.langfuse_secret_key == "test-langfuse-secret"
        assert config.langfuse_public_key == "test-langfuse-public"
        assert config.langfuse_host == "https://cloud.langfuse.com"

    def test_missing_key_is_empty(self, monkeypatch):
        """Test a missing credential yields an empty key, not an error"""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        assert APIConfig.from_env().openai_api_key == ""


class TestAIConfig:
    """Test language model configuration"""

    def test_default_values(self):
        """Test default configuration values"""
        config = AIConfig()

        assert config.provider == "openai"
        assert config.model == "gpt-3.5-turbo"
        assert config.max_tokens == 500
        assert config.temperature == 0.7
        assert config.enable_fallback is True
        assert 10 <= config.timeout_seconds <= 30

    def test_to_dict(self):
        """Test conversion to dictionary"""
        assert AIConfig().to_dict() == {
            "model": "gpt-3.5-turbo",
            "temperature": 0.7,
            "max_tokens": 500,
            "timeout": 20.0
        }


class TestConversationConfig:
    """Test conversation configuration"""

    def test_defaults(self):
        config = ConversationConfig()

        assert config.max_messages == 50
        assert config.session_timeout_minutes == 30
        assert config.session_timeout_seconds == 1800
        assert config.recent_window == 8
        assert config.history_window == 6
        assert config.storage_key == "chatbot_conversation"


class TestSecurityConfig:
    """Test input and rate limit configuration"""

    def test_defaults(self):
        config = SecurityConfig()

        assert config.max_message_length == 500
        assert config.rate_limit_max_requests == 10
        assert config.rate_limit_window_ms == 60000


class TestAssistantConfig:
    """Test persona configuration"""

    def test_render_welcome_uses_name(self):
        config = AssistantConfig(name="Ada")

        assert "Ada" in config.render_welcome()


class TestAppConfig:
    """Test main application configuration"""

    def test_validate_reports_missing_key(self):
        """Test a missing key is reported as a degraded mode"""
        config = AppConfig()
        config.api.openai_api_key = ""

        errors = config.validate()

        assert any("OpenAI API key" in error for error in errors)

    def test_validate_with_valid_config(self):
        config = AppConfig()
        config.api.openai_api_key = "sk-test"

        assert config.validate() == []

    @pytest.mark.parametrize("field_name,value", [
        ("temperature", 3.0),
        ("max_tokens", 0),
    ])
    def test_validate_ai_ranges(self, field_name, value):
        config = AppConfig()
        config.api.openai_api_key = "sk-test"
        setattr(config.ai, field_name, value)

        assert len(config.validate()) == 1

    def test_validate_unknown_storage_backend(self):
        config = AppConfig()
        config.api.openai_api_key = "sk-test"
        config.conversation.storage_backend = "redis"

        assert any("storage backend" in error for error in config.validate())

    def test_validate_message_length_bounds(self):
        config = AppConfig()
        config.api.openai_api_key = "sk-test"
        config.security.max_message_length = 2000

        assert any("max_message_length" in error for error in config.validate())

    def test_load_environment_overrides(self, monkeypatch):
        """Test environment variables override defaults"""
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("CHATBOT_AI_MODEL", "gpt-4o-mini")
        monkeypatch.setenv("CHATBOT_STORAGE_BACKEND", "sqlite")

        config = AppConfig.load()

        assert config.environment == "production"
        assert config.debug is False
        assert config.logging.level == "WARNING"
        assert config.ai.model == "gpt-4o-mini"
        assert config.conversation.storage_backend == "sqlite"

    def test_get_langfuse_config(self):
        config = AppConfig()
        config.api.langfuse_public_key = "pk"
        config.api.langfuse_secret_key = "sk"

        assert config.get_langfuse_config() == {
            "secret_key": "sk",
            "public_key": "pk",
            "host": "https://cloud.langfuse.com"
        }


class TestGlobalConfig:
    """Test global configuration accessors"""

    def test_get_config_is_cached(self, monkeypatch):
        monkeypatch.setattr(app_config_module, "_config", None)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        assert get_config() is get_config()

    def test_reload_config_builds_new_instance(self, monkeypatch):
        monkeypatch.setattr(app_config_module, "_config", None)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        first = get_config()
        second = reload_config()

        assert first is not second
        assert second.api.openai_api_key == "sk-test"
