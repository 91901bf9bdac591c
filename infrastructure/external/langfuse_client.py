"""
Langfuse client adapter for tracing provider calls.
Tracing is optional: without keys every accessor returns None.
"""

from langfuse import Langfuse
from langfuse.langchain import CallbackHandler
from typing import Dict, Optional

from config.app_config import get_config
from utils.logging_config import get_logger


class LangfuseClient:
    """
    Adapter for Langfuse observability.
    Provides the LangChain callback handler attached to provider calls.
    """

    def __init__(self, langfuse_config: Optional[Dict[str, str]] = None, enabled: Optional[bool] = None):
        self.logger = get_logger(__name__)
        if langfuse_config is None or enabled is None:
            config = get_config()
            langfuse_config = langfuse_config if langfuse_config is not None else config.get_langfuse_config()
            enabled = enabled if enabled is not None else config.logging.enable_langfuse_tracing
        self.langfuse_config = langfuse_config
        self.enabled = enabled
        self._client: Optional[Langfuse] = None
        self._callback_handler: Optional[CallbackHandler] = None

    def is_configured(self) -> bool:
        return bool(
            self.enabled
            and self.langfuse_config.get("secret_key")
            and self.langfuse_config.get("public_key")
        )

    def get_client(self) -> Optional[Langfuse]:
        """
        Get configured Langfuse client

        Returns:
            Optional[Langfuse]: Configured client or None if not available
        """
        if self._client is None:
            if not self.is_configured():
                self.logger.debug("Langfuse keys not configured, skipping initialization")
                return None

            try:
                self._client = Langfuse(
                    secret_key=self.langfuse_config["secret_key"],
                    public_key=self.langfuse_config["public_key"],
                    host=self.langfuse_config.get("host", "https://cloud.langfuse.com")
                )
                self.logger.info("Langfuse client initialized successfully")

            except Exception as e:
                self.logger.warning(f"Failed to initialize Langfuse client: {e}")
                return None

        return self._client

    def get_callback_handler(self) -> Optional[CallbackHandler]:
        """
        Get Langfuse callback handler for LangChain integration

        Returns:
            Optional[CallbackHandler]: Callback handler or None if not available
        """
        if self._callback_handler is None:
            if self.get_client() is None:
                return None

            try:
                self._callback_handler = CallbackHandler(public_key=self.langfuse_config["public_key"])
                self.logger.debug("Langfuse callback handler created")

            except Exception as e:
                self.logger.warning(f"Failed to create Langfuse callback handler: {e}")
                return None

        return self._callback_handler
