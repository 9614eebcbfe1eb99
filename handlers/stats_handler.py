"""
handlers/stats_handler.py
-------------------------
Handles /stats and /collections.
Delegates all logic to StatsService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from config import DEFAULT_CURRENCY
from handlers.common import parse_month_arg, reply_long, reply_on_error
from models.operator import Operator, Role
from security.auth import require_role
from security.rate_limiter import rate_limited
from services.stats_service import StatsService
from utils.dates import today

stats_service = StatsService()


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def stats_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """
    Handle /stats [YYYY-MM] - totals, statuses and revenue for a month.
    Past months are rebuilt from the payments recorded in them.
    """
    month = parse_month_arg(context.args or [])
    stats = stats_service.get_stats(month, today())
    await update.message.reply_text(
        stats_service.format_stats(stats, month, DEFAULT_CURRENCY)
    )


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def collections_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /collections [YYYY-MM] - how much each operator collected."""
    month = parse_month_arg(context.args or [])
    collectors = stats_service.get_collections(month, today())
    await reply_long(
        update, stats_service.format_collections(collectors, month, DEFAULT_CURRENCY)
    )
