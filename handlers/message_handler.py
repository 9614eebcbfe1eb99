"""
handlers/message_handler.py
---------------------------
Reminder queue commands.

Operators queue reminders; backend admins work through the queue, sending
each message by chat-app link or SMS and marking it sent.
"""

from telegram import Update
from telegram.ext import ContextTypes

from config import DEFAULT_REMINDER_TEMPLATE
from handlers.common import parse_id, reply_long, reply_on_error, rest_of
from models.operator import Operator, Role
from models.subscriber import PaymentStatus
from security.auth import require_role
from security.rate_limiter import rate_limited
from services.message_service import MessageService, render_template
from services.subscriber_service import SubscriberService
from utils.dates import now, today
from utils.logger import get_logger

logger = get_logger(__name__)
message_service = MessageService()
subscriber_service = SubscriberService()


def _group_from_args(args: list[str]):
    return message_service.find_group(parse_id(args, label="Group ID"))


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def remind_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /remind <id> [text] - queue a reminder for one subscriber."""
    args = list(context.args or [])
    subscriber = subscriber_service.get_subscriber(parse_id(args, label="Subscriber ID"), today())
    text = rest_of(args, 1) or render_template(DEFAULT_REMINDER_TEMPLATE, subscriber)
    message_id = message_service.queue_reminder(subscriber, text, operator)
    await update.message.reply_text(
        f"📨 Reminder #{message_id} for {subscriber.name} queued for the backend."
    )


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def remind_overdue_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """
    Handle /remind_overdue [template] - queue the same reminder for every
    overdue subscriber. Template variables: {name}, {fee}, {plate}.
    """
    template = rest_of(list(context.args or []), 0) or DEFAULT_REMINDER_TEMPLATE
    overdue = subscriber_service.list_subscribers(today(), status=PaymentStatus.OVERDUE)
    if not overdue:
        await update.message.reply_text("🎉 Nobody is overdue.")
        return
    queued = message_service.queue_bulk(overdue, template, operator)
    await update.message.reply_text(
        f"📨 {queued} of {len(overdue)} message(s) sent to the backend queue.\n\n"
        f"Preview:\n{render_template(template, overdue[0])}"
    )


@require_role(Role.BACKEND_ADMIN)
@rate_limited
@reply_on_error
async def queue_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /queue - list pending messages, newest first."""
    messages = message_service.list_pending()
    if not messages:
        await update.message.reply_text("✅ All clear! No pending messages right now.")
        return

    lines = [f"🕒 {len(messages)} pending message(s):\n"]
    for m in messages:
        lines.append(
            f"{m}\n  {m.created_at:%b %d, %H:%M}\n  💬 {m.message}\n"
            f"  /wa {m.id} · /sms {m.id} · /sent {m.id} · /dismiss {m.id}"
        )
    await reply_long(update, "\n\n".join(lines))


@require_role(Role.BACKEND_ADMIN)
@rate_limited
@reply_on_error
async def groups_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /groups - pending bulk messages grouped by text."""
    groups = message_service.bulk_groups()
    if not groups:
        await update.message.reply_text("📭 No pending bulk messages.")
        return

    lines = []
    for g in groups:
        lines.append(
            f"📦 Group #{g.key}: {g.count} message(s)\n"
            f"  💬 {g.text}\n"
            f"  📞 {', '.join(g.phones)}\n"
            f"  /sms_group {g.key} · /sent_group {g.key}"
        )
    await reply_long(update, "\n\n".join(lines))


@require_role(Role.BACKEND_ADMIN)
@rate_limited
@reply_on_error
async def wa_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /wa <message_id> - chat-app link prefilled with the message."""
    message = message_service.get_message(parse_id(context.args or [], label="Message ID"))
    await update.message.reply_text(
        f"💬 {message.subscriber_name}: {message_service.whatsapp_link(message)}\n"
        f"Then mark it: /sent {message.id}"
    )


@require_role(Role.BACKEND_ADMIN)
@rate_limited
@reply_on_error
async def sent_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /sent <message_id> - mark a message as sent."""
    message_id = parse_id(context.args or [], label="Message ID")
    if message_service.mark_sent(message_id, operator.username, now()):
        await update.message.reply_text(f"✅ Message #{message_id} marked as sent.")
    else:
        await update.message.reply_text(f"ℹ️ Message #{message_id} was already sent.")


@require_role(Role.BACKEND_ADMIN)
@rate_limited
@reply_on_error
async def sent_group_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /sent_group <group_id> - mark a whole bulk group as sent."""
    group = _group_from_args(list(context.args or []))
    count = message_service.mark_group_sent(group, operator.username, now())
    await update.message.reply_text(f"✅ {count} message(s) marked as sent.")


@require_role(Role.BACKEND_ADMIN)
@rate_limited
@reply_on_error
async def dismiss_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /dismiss <message_id> - delete a (duplicate) message."""
    message_id = parse_id(context.args or [], label="Message ID")
    message_service.dismiss(message_id)
    await update.message.reply_text(f"🗑️ Message #{message_id} dismissed.")


@require_role(Role.BACKEND_ADMIN)
@rate_limited
@reply_on_error
async def sms_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /sms <message_id> - send through the SMS gateway and mark sent."""
    if not message_service.sms.is_configured:
        await update.message.reply_text("⚠️ SMS gateway credentials are not configured.")
        return
    message_id = parse_id(context.args or [], label="Message ID")
    result = message_service.dispatch_sms(message_id, operator.username, now())
    await update.message.reply_text(f"📤 SMS sent to {result.phone}; message #{message_id} marked sent.")


@require_role(Role.BACKEND_ADMIN)
@rate_limited
@reply_on_error
async def sms_group_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /sms_group <group_id> - send a bulk group in one gateway call and mark it sent."""
    if not message_service.sms.is_configured:
        await update.message.reply_text("⚠️ SMS gateway credentials are not configured.")
        return
    group = _group_from_args(list(context.args or []))
    count = message_service.dispatch_group_sms(group, operator.username, now())
    await update.message.reply_text(f"📤 Bulk SMS sent; {count} message(s) marked sent.")
