"""
handlers/activity_handler.py
----------------------------
Handles /activity - the recent activity feed.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import reply_long, reply_on_error
from models.operator import Operator, Role
from security.auth import require_role
from security.rate_limiter import rate_limited
from services.activity_service import ActivityService
from utils.dates import now

activity_service = ActivityService()


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def activity_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /activity - payments and new subscribers from the last days."""
    current = now()
    entries = activity_service.list_recent(current)
    await reply_long(update, activity_service.render(entries, current))
