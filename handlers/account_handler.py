"""
handlers/account_handler.py
---------------------------
Operator account management: /operators, /add_operator, /set_role.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import parse_id, reply_long, reply_on_error
from models.operator import Operator, Role
from security.auth import account_service, require_role
from security.rate_limiter import rate_limited
from utils.errors import ValidationError


@require_role(Role.ADMIN)
@rate_limited
@reply_on_error
async def operators_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /operators - list operator accounts with their roles."""
    operators = account_service.list_operators()
    if not operators:
        await update.message.reply_text("📭 No operators registered yet.")
        return
    lines = [f"👥 Operators ({len(operators)}):\n"]
    lines.extend(f"  {o}" for o in operators)
    await reply_long(update, "\n".join(lines))


@require_role(Role.ADMIN)
@rate_limited
@reply_on_error
async def add_operator_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """
    Handle /add_operator <telegram_id> <username> [role].
    Role defaults to employee.
    """
    args = list(context.args or [])
    telegram_id = parse_id(args, label="Telegram ID")
    if len(args) < 2:
        raise ValidationError("Usage: /add_operator <telegram_id> <username> [employee|admin|backend_admin]")
    role = args[2] if len(args) > 2 else None
    created = account_service.create_operator(operator, telegram_id, args[1], role)
    await update.message.reply_text(f"➕ Operator created: {created}")


@require_role(Role.ADMIN)
@rate_limited
@reply_on_error
async def set_role_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /set_role <username> <role>."""
    args = list(context.args or [])
    if len(args) < 2:
        raise ValidationError("Usage: /set_role <username> <employee|admin|backend_admin>")
    updated = account_service.set_role(operator, args[0], args[1])
    await update.message.reply_text(f"🔐 {updated}")
