"""
handlers/export_handler.py
---------------------------
Handles data export commands (CSV, Excel).
Delegates to ExportService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from handlers.common import parse_month_arg, reply_on_error
from models.operator import Operator, Role
from services.export_service import ExportService
from security.auth import require_role
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)
export_service = ExportService()


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def export_csv_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """
    Handle /export_csv command - send a month's payments as CSV.
    Optional: /export_csv 2026-01 (for January 2026).
    """
    month = parse_month_arg(context.args or [])
    await update.message.reply_text("📄 Preparing CSV file...")

    buffer = export_service.export_month_csv(month)
    await update.message.reply_document(
        document=buffer,
        filename=f"payments_{month:%Y_%m}.csv",
        caption=f"📊 Payments for {month:%B %Y} - CSV",
    )
    logger.info(f"{operator.username} exported CSV for {month:%Y-%m}")


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def export_excel_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """
    Handle /export_excel command - send a month's payments as Excel.
    Optional: /export_excel 2026-01 (for January 2026).
    """
    month = parse_month_arg(context.args or [])
    await update.message.reply_text("📊 Preparing Excel file...")

    buffer = export_service.export_month_excel(month)
    await update.message.reply_document(
        document=buffer,
        filename=f"payments_{month:%Y_%m}.xlsx",
        caption=f"📊 Payments for {month:%B %Y} - Excel",
    )
    logger.info(f"{operator.username} exported Excel for {month:%Y-%m}")
