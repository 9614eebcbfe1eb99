"""
handlers/start_handler.py
--------------------------
Handles /start, /help and /myid commands.
Greets the operator and shows the commands their role allows.
"""

from telegram import Update
from telegram.ext import ContextTypes

from models.operator import Operator, Role
from security.auth import require_role
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)

EMPLOYEE_HELP = """
🅿️ *Parking subscriptions*

*👥 Subscribers:*
/subscribers \\[paid|pending|overdue] \\[search]
/add Name | Phone | Plate | Fee \\[| Car]
/edit <id> Name | Phone | Plate | Fee \\[| Car]
/pay <id> \\[amount]
/history <id>

*✉️ Reminders:*
/remind <id> \\[text]
/remind\\_overdue \\[template]

*📊 Reports:*
/stats \\[YYYY-MM]
/collections \\[YYYY-MM]
/activity
/export\\_csv \\[YYYY-MM]
/export\\_excel \\[YYYY-MM]
"""

ADMIN_HELP = """
*🔐 Admin:*
/delete <id>
/edit\\_payment <payment\\_id> <amount> <YYYY-MM-DD>
/delete\\_payment <payment\\_id>
/set\\_validity <id> <YYYY-MM-DD|none>
/operators
/add\\_operator <telegram\\_id> <username> \\[role]
/set\\_role <username> <role>
"""

BACKEND_HELP = """
*📨 Message queue:*
/queue
/groups
/wa <message\\_id>
/sms <message\\_id>
/sms\\_group <group\\_id>
/sent <message\\_id>
/sent\\_group <group\\_id>
/dismiss <message\\_id>
"""


def help_text(role: Role) -> str:
    text = EMPLOYEE_HELP
    if role.satisfies(Role.ADMIN):
        text += ADMIN_HELP
    if role.satisfies(Role.BACKEND_ADMIN):
        text += BACKEND_HELP
    return text


@require_role(Role.EMPLOYEE)
@rate_limited
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /start command - greet the operator."""
    logger.info(f"Operator {operator.username} ({operator.telegram_id}) started the bot.")
    await update.message.reply_text(
        f"Hello {operator.username}! 👋\n"
        f"You are signed in as *{operator.role.value}*.\n\n"
        f"Type /help to see your commands.",
        parse_mode="Markdown",
    )


@require_role(Role.EMPLOYEE)
@rate_limited
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /help command - show the commands available to this role."""
    await update.message.reply_text(help_text(operator.role), parse_mode="Markdown")


@rate_limited
async def myid_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myid command - show the Telegram ID so an admin can register it."""
    user = update.effective_user
    await update.message.reply_text(
        f"🆔 Your Telegram ID: `{user.id}`\n"
        f"Send it to an admin so they can add you with /add\\_operator.",
        parse_mode="Markdown",
    )
