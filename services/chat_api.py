"""
Chat endpoint contract.

Maps a request payload onto MessageHandler and its failures onto HTTP-style
status codes, so any web framework can serve it with a thin route.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from config.app_config import AppConfig, get_config
from config.environments import get_environment_config
from services.message_service.message_handler import MessageHandler
from utils.exceptions import InvalidContent, RateLimitExceeded
from utils.logging_config import get_error_tracker, get_logger, initialize_logging


@dataclass(frozen=True)
class ChatAPIResponse:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class ChatAPI:
    """Request/response adapter around one MessageHandler"""

    def __init__(self, handler: Optional[MessageHandler] = None, config: Optional[AppConfig] = None):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self.handler = handler or MessageHandler(config=self.config)

    def handle_chat(self, payload: Any) -> ChatAPIResponse:
        """
        Process a {message, clientId?} payload

        Returns:
            ChatAPIResponse: 200 with the bot message and context, 400 for bad
            input, 429 when rate limited, 500 for anything else
        """
        message = payload.get("message") if isinstance(payload, dict) else None

        if not message or not isinstance(message, str):
            return ChatAPIResponse(400, {"error": "Message is required and must be a string"})

        if len(message) > self.config.security.max_request_length:
            return ChatAPIResponse(400, {"error": "Message too long"})

        client_id = payload.get("clientId") or "default"

        try:
            bot_message = self.handler.process_message(message, str(client_id))
        except RateLimitExceeded as e:
            return ChatAPIResponse(429, {
                "error": "Too many messages. Please wait before sending another.",
                "retryAfterMs": e.retry_after_ms,
            })
        except InvalidContent:
            return ChatAPIResponse(400, {"error": "Invalid message content"})
        except Exception as e:
            self.logger.error(f"Chat API error: {e}", exc_info=True)
            get_error_tracker().track_error(e, context="chat_api.handle_chat")
            return ChatAPIResponse(500, {"error": "Internal server error"})

        return ChatAPIResponse(200, {
            "success": True,
            "message": bot_message.to_dict(),
            "context": self.handler.get_context().to_dict(),
        })

    def get_status(self) -> ChatAPIResponse:
        """AI availability and the active rate-limit settings"""
        try:
            ai_status = self.handler.get_ai_status()
        except Exception as e:
            self.logger.error(f"Chat status error: {e}", exc_info=True)
            return ChatAPIResponse(500, {"error": "Failed to get status"})

        return ChatAPIResponse(200, {
            "success": True,
            "status": {
                "ai": ai_status.to_dict(),
                "rateLimits": {
                    "maxRequestsPerMinute": self.handler.rate_limiter.max_requests,
                    "windowMs": self.handler.rate_limiter.window_ms,
                },
            },
        })


def create_chat_api(config: Optional[AppConfig] = None) -> ChatAPI:
    """
    Process entry point: configure logging, report configuration problems
    and build the endpoint with its own MessageHandler.

    Without an explicit config the APP_ENV profile is used.
    """
    config = config or get_environment_config()
    initialize_logging(config)

    logger = get_logger(__name__)
    for problem in config.validate():
        logger.warning(f"Configuration: {problem}")
    logger.info(
        f"Chat API ready (environment={config.environment}, storage={config.conversation.storage_backend})"
    )
    return ChatAPI(config=config)
