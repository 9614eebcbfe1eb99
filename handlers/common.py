"""
handlers/common.py
------------------
Helpers shared by all handlers: argument parsing and turning service
errors into chat replies.
"""

from datetime import date
from functools import wraps
from typing import Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes

from utils.dates import parse_month, today
from utils.errors import (
    AuthorizationError,
    InvalidRangeError,
    NotFoundError,
    PartialBulkFailure,
    TransientIOError,
    ValidationError,
)
from utils.logger import get_logger

logger = get_logger(__name__)


def reply_on_error(func: Callable):
    """
    Decorator mapping service errors to replies.

        ValidationError / InvalidRangeError -> inline explanation
        AuthorizationError                  -> blocking refusal
        NotFoundError                       -> "not found"
        PartialBulkFailure                  -> which ids to retry
        TransientIOError                    -> "try again", nothing changed
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        try:
            return await func(update, context, *args, **kwargs)
        except (ValidationError, InvalidRangeError) as e:
            await update.message.reply_text(f"⚠️ {e}")
        except AuthorizationError as e:
            await update.message.reply_text(f"⛔ {e}")
        except NotFoundError as e:
            await update.message.reply_text(f"🔍 {e}")
        except PartialBulkFailure as e:
            await update.message.reply_text(
                f"⚠️ Partly done: {len(e.succeeded)} succeeded, {len(e.failed)} failed.\n"
                f"Retry these one by one: {', '.join(f'#{i}' for i in e.failed)}"
            )
        except TransientIOError as e:
            logger.error(f"{func.__name__} failed: {e}")
            await update.message.reply_text(f"❌ {e}. Nothing was changed, try again.")

    return wrapper


def parse_id(args: list[str], position: int = 0, label: str = "ID") -> int:
    """
    Raises:
        ValidationError: If the argument is missing or not a whole number.
    """
    if len(args) <= position:
        raise ValidationError(f"{label} is required")
    try:
        return int(args[position].lstrip("#"))
    except ValueError:
        raise ValidationError(f"{label} must be a whole number")


def parse_date(text: str) -> date:
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        raise ValidationError(f"'{text}' is not a date (use YYYY-MM-DD)")


def parse_month_arg(args: list[str]) -> date:
    """First day of the month given as 'YYYY-MM', or of the current month."""
    if not args:
        return today().replace(day=1)
    try:
        return parse_month(args[0])
    except ValueError:
        raise ValidationError(f"'{args[0]}' is not a month (use YYYY-MM)")


def split_fields(args: list[str]) -> list[str]:
    """Split 'a | b | c' style command arguments into stripped fields."""
    return [p.strip() for p in " ".join(args).split("|")]


def rest_of(args: list[str], position: int) -> Optional[str]:
    text = " ".join(args[position:]).strip()
    return text or None


# Telegram refuses messages longer than this.
MAX_MESSAGE_LENGTH = 4096


def chunk_text(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """
    Split a reply into pieces of at most `limit` characters.

    Cuts at line breaks where possible; a single line longer than `limit`
    is cut at the limit.
    """
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


async def reply_long(update: Update, text: str) -> None:
    """Send `text` as one or more replies, in order."""
    for chunk in chunk_text(text):
        await update.message.reply_text(chunk)
