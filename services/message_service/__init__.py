"""
Message service - input gatekeeping and the per-conversation message handler.
"""

from .input_validation import DANGEROUS_PATTERNS, is_valid_message, sanitize_message, validate_message
from .message_handler import MessageHandler
from .rate_limiter import RateLimiter

__all__ = [
    'MessageHandler',
    'RateLimiter',
    'DANGEROUS_PATTERNS',
    'is_valid_message',
    'sanitize_message',
    'validate_message'
]
