"""
main.py
-------
Entry point for the ParkBot Telegram bot.

Responsibilities:
    - Initialize the database connection pool and schema.
    - Configure and start the Telegram bot with all handlers.
    - Schedule the daily pending-queue digest for backend admins.
"""

from datetime import time as dt_time

from telegram import BotCommand
from telegram.ext import Application, CommandHandler

from config import TELEGRAM_BOT_TOKEN
from db.connection import init_pool, close_pool
from db.init_db import create_tables
from handlers.account_handler import add_operator_command, operators_command, set_role_command
from handlers.activity_handler import activity_command
from handlers.export_handler import export_csv_command, export_excel_command
from handlers.message_handler import (
    dismiss_command,
    groups_command,
    queue_command,
    remind_command,
    remind_overdue_command,
    sent_command,
    sent_group_command,
    sms_command,
    sms_group_command,
    wa_command,
)
from handlers.start_handler import start_command, help_command, myid_command
from handlers.stats_handler import collections_command, stats_command
from handlers.subscriber_handler import (
    add_command,
    delete_command,
    delete_payment_command,
    edit_command,
    edit_payment_command,
    history_command,
    pay_command,
    set_validity_command,
    subscribers_command,
)
from models.operator import Role
from security.auth import account_service
from services.message_service import MessageService
from utils.dates import TZ
from utils.errors import TransientIOError
from utils.logger import get_logger

logger = get_logger(__name__)

COMMANDS = {
    "start": start_command,
    "help": help_command,
    "myid": myid_command,
    "subscribers": subscribers_command,
    "add": add_command,
    "edit": edit_command,
    "delete": delete_command,
    "pay": pay_command,
    "history": history_command,
    "edit_payment": edit_payment_command,
    "delete_payment": delete_payment_command,
    "set_validity": set_validity_command,
    "remind": remind_command,
    "remind_overdue": remind_overdue_command,
    "queue": queue_command,
    "groups": groups_command,
    "wa": wa_command,
    "sms": sms_command,
    "sms_group": sms_group_command,
    "sent": sent_command,
    "sent_group": sent_group_command,
    "dismiss": dismiss_command,
    "stats": stats_command,
    "collections": collections_command,
    "activity": activity_command,
    "export_csv": export_csv_command,
    "export_excel": export_excel_command,
    "operators": operators_command,
    "add_operator": add_operator_command,
    "set_role": set_role_command,
}


async def send_queue_digest(context) -> None:
    """
    Scheduled job: tell every backend admin how many messages are waiting.
    Runs daily at 09:00 local time.
    """
    try:
        pending = MessageService().list_pending()
        recipients = account_service.operators_with_role(Role.BACKEND_ADMIN)
    except TransientIOError as e:
        logger.error(f"Queue digest skipped: {e}")
        return

    if not pending:
        logger.info("Queue digest: nothing pending.")
        return

    bulk = sum(1 for m in pending if m.is_bulk)
    text = (
        f"📬 *Message queue*\n\n"
        f"{len(pending)} message(s) waiting ({bulk} bulk).\n"
        f"Open /queue or /groups to work through them."
    )
    for operator in recipients:
        try:
            await context.bot.send_message(
                chat_id=operator.telegram_id,
                text=text,
                parse_mode="Markdown",
            )
            logger.info(f"Sent queue digest to {operator.username}")
        except Exception as e:
            logger.error(f"Failed to send queue digest to {operator.username}: {e}")


async def set_bot_commands(application: Application) -> None:
    """Register bot commands menu in Telegram on startup."""
    commands = [
        BotCommand("start", "🚀 Start the bot"),
        BotCommand("help", "📖 Show help"),
        BotCommand("subscribers", "🚗 List subscribers"),
        BotCommand("add", "➕ Add a subscriber"),
        BotCommand("pay", "💵 Record a payment"),
        BotCommand("history", "🧾 Subscriber history"),
        BotCommand("remind", "✉️ Queue a reminder"),
        BotCommand("remind_overdue", "📨 Remind all overdue"),
        BotCommand("stats", "📊 Monthly stats"),
        BotCommand("collections", "💰 Collections per operator"),
        BotCommand("activity", "🕒 Recent activity"),
        BotCommand("export_csv", "📄 Export CSV"),
        BotCommand("export_excel", "📊 Export Excel"),
        BotCommand("queue", "📬 Pending messages"),
        BotCommand("myid", "🆔 Your Telegram ID"),
    ]
    await application.bot.set_my_commands(commands)
    logger.info("Bot commands menu registered successfully.")


def main() -> None:
    """Initialize and run the bot."""

    # ── 1. Database setup ─────────────────────────────────
    logger.info("Initializing database...")
    init_pool()
    create_tables()

    # ── 2. Build the Telegram application ─────────────────
    logger.info("Starting Telegram bot...")
    app = Application.builder().token(TELEGRAM_BOT_TOKEN).post_init(set_bot_commands).build()

    # ── 3. Register command handlers ──────────────────────
    for name, callback in COMMANDS.items():
        app.add_handler(CommandHandler(name, callback))

    # ── 4. Schedule jobs ──────────────────────────────────
    job_queue = app.job_queue
    if job_queue:
        job_queue.run_daily(
            send_queue_digest,
            time=dt_time(hour=9, minute=0, tzinfo=TZ),
            name="queue_digest",
        )
        logger.info("Scheduled daily queue digest (09:00)")

    # ── 5. Start polling ──────────────────────────────────
    logger.info("🚀 ParkBot is running! Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True, allowed_updates=["message"])

    # ── 6. Cleanup on shutdown ────────────────────────────
    close_pool()
    logger.info("ParkBot stopped.")


if __name__ == "__main__":
    main()
