"""
security/rate_limiter.py
-------------------------
Rate limiting middleware to prevent command flooding.
Limits the number of messages an operator can send within a time window.
"""

import time
from collections import defaultdict
from functools import wraps
from typing import Callable

from telegram import Update
from telegram.ext import ContextTypes

from config import RATE_LIMIT_MESSAGES, RATE_LIMIT_WINDOW_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Sliding-window counter per user.

    Args:
        limit: Max hits per window.
        window_seconds: Window duration.
        clock: Returns the current time in seconds.
    """

    def __init__(
        self,
        limit: int = RATE_LIMIT_MESSAGES,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: dict[int, list[float]] = defaultdict(list)

    def allow(self, user_id: int) -> bool:
        """Record a hit for the user and say whether it is within the limit."""
        now = self.clock()
        cutoff = now - self.window_seconds
        self._hits[user_id] = [t for t in self._hits[user_id] if t > cutoff]
        if len(self._hits[user_id]) >= self.limit:
            return False
        self._hits[user_id].append(now)
        return True


_limiter = RateLimiter()


def rate_limited(func: Callable):
    """
    Decorator that enforces rate limiting per user.

    Configuration (via .env):
        RATE_LIMIT_MESSAGES: Max messages per window (default: 30).
        RATE_LIMIT_WINDOW_SECONDS: Window duration in seconds (default: 60).
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not _limiter.allow(user.id):
            logger.warning(f"⚠️ Rate limit hit for user {user.id}")
            await update.message.reply_text(
                "⚠️ Too many commands. Wait a moment and try again."
            )
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
