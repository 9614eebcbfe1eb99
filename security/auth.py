"""
security/auth.py
-----------------
Authorization middleware for the Telegram bot.
Only registered operators can use the bot, and each command declares the
minimum role it needs.
"""

from functools import wraps
from typing import Callable

from telegram import Update
from telegram.ext import ContextTypes

from models.operator import Role
from services.account_service import AccountService
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)
account_service = AccountService()


def require_role(minimum: Role = Role.EMPLOYEE):
    """
    Decorator that restricts a handler to operators whose role covers `minimum`
    (see Role.satisfies).

    Usage:
        @require_role(Role.ADMIN)
        async def my_handler(update, context, operator):
            ...

    Behavior:
        - Unknown Telegram accounts are told their ID so an admin can add them.
        - Operators whose role does not cover it get a blocking refusal.
        - The resolved Operator is passed to the handler as third argument.
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
            user = update.effective_user
            if not user or not update.message:
                return

            try:
                operator = account_service.get_operator(user.id)
            except TransientIOError:
                await update.message.reply_text("⚠️ Could not check your account. Try again.")
                return

            if operator is None:
                logger.warning(
                    f"🚫 Unregistered access attempt: user_id={user.id}, "
                    f"username={user.username}, name={user.first_name}"
                )
                await update.message.reply_text(
                    "⛔ You are not registered as an operator.\n"
                    f"Ask an admin to add your Telegram ID: {user.id}"
                )
                return

            if not operator.role.satisfies(minimum):
                logger.warning(
                    f"🚫 {operator.username} ({operator.role.value}) tried "
                    f"{func.__name__}, needs {minimum.value}"
                )
                await update.message.reply_text(
                    f"⛔ This command requires the {minimum.value} role."
                )
                return

            return await func(update, context, operator, *args, **kwargs)

        return wrapper

    return decorator
