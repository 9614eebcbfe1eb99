"""
handlers/subscriber_handler.py
------------------------------
Handles subscriber and payment commands.
Delegates all logic to SubscriberService.
"""

from telegram import Update
from telegram.ext import ContextTypes

from config import DEFAULT_CURRENCY
from handlers.common import parse_date, parse_id, reply_long, reply_on_error, split_fields
from models.operator import Operator, Role
from models.subscriber import PaymentStatus
from security.auth import require_role
from security.rate_limiter import rate_limited
from services.message_service import MessageService
from services.subscriber_service import SubscriberService
from utils.dates import today
from utils.errors import ValidationError
from utils.logger import get_logger

logger = get_logger(__name__)
subscriber_service = SubscriberService()
message_service = MessageService()

_STATUS_ICONS = {
    PaymentStatus.PAID: "✅",
    PaymentStatus.PENDING: "⏳",
    PaymentStatus.OVERDUE: "🔴",
}

_ADD_USAGE = (
    "📝 *Add a subscriber*\n\n"
    "`/add Name | Phone | Plate | Fee`\n"
    "`/add Name | Phone | Plate | Fee | Car`\n\n"
    "Example: `/add Rami Khoury | 03 123 456 | B 123456 | 100 | Kia Rio`"
)


def _parse_subscriber_fields(fields: list[str]) -> dict:
    if len(fields) < 4:
        raise ValidationError("Expected: Name | Phone | Plate | Fee [| Car]")
    return {
        "name": fields[0],
        "phone": fields[1],
        "vehicle_plate": fields[2],
        "monthly_fee": fields[3],
        "car": fields[4] if len(fields) > 4 else None,
    }


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def subscribers_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """
    Handle /subscribers [paid|pending|overdue] [search text].
    """
    args = list(context.args or [])
    status = None
    if args and args[0].lower() in {s.value for s in PaymentStatus}:
        status = PaymentStatus(args.pop(0).lower())
    search = " ".join(args) or None

    subscribers = subscriber_service.list_subscribers(today(), status=status, search=search)
    if not subscribers:
        await update.message.reply_text("📭 No subscribers match.")
        return

    lines = [f"🚗 Subscribers ({len(subscribers)}):\n"]
    for s in subscribers:
        valid = s.valid_until.isoformat() if s.valid_until else "-"
        lines.append(
            f"{_STATUS_ICONS[s.status]} #{s.id} {s.name} | {s.vehicle_plate} | "
            f"{DEFAULT_CURRENCY}{s.monthly_fee:,.2f} | until {valid}"
        )
    await reply_long(update, "\n".join(lines))


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def add_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /add Name | Phone | Plate | Fee [| Car]."""
    if not context.args:
        await update.message.reply_text(_ADD_USAGE, parse_mode="Markdown")
        return

    fields = _parse_subscriber_fields(split_fields(context.args))
    saved = subscriber_service.add_subscriber(operator, today(), **fields)
    await update.message.reply_text(
        f"➕ Subscriber added:\n"
        f"  👤 {saved.name}\n"
        f"  📞 {saved.phone}\n"
        f"  🚗 {saved.car} - {saved.vehicle_plate}\n"
        f"  💵 {DEFAULT_CURRENCY}{saved.monthly_fee:,.2f} / month\n"
        f"  🔖 #{saved.id}"
    )


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def edit_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /edit <id> Name | Phone | Plate | Fee [| Car]."""
    args = list(context.args or [])
    subscriber_id = parse_id(args, label="Subscriber ID")
    fields = _parse_subscriber_fields(split_fields(args[1:]))
    updated = subscriber_service.update_subscriber(subscriber_id, today(), **fields)
    await update.message.reply_text(f"✏️ Updated: {updated}")


@require_role(Role.ADMIN)
@rate_limited
@reply_on_error
async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /delete <id> - delete a subscriber and all their payments."""
    subscriber_id = parse_id(context.args or [], label="Subscriber ID")
    removed = subscriber_service.delete_subscriber(subscriber_id)
    await update.message.reply_text(
        f"🗑️ Subscriber #{subscriber_id} deleted together with {removed} payment(s)."
    )


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def pay_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """
    Handle /pay <id> [amount] - record a payment for this month.
    The amount defaults to the subscriber's monthly fee.
    """
    args = list(context.args or [])
    subscriber_id = parse_id(args, label="Subscriber ID")
    current = today()
    subscriber = subscriber_service.get_subscriber(subscriber_id, current)
    amount = args[1] if len(args) > 1 else subscriber.monthly_fee

    payment = subscriber_service.record_payment(subscriber_id, amount, operator, current)
    refreshed = subscriber_service.get_subscriber(subscriber_id, current)
    await update.message.reply_text(
        f"💵 Payment recorded for {refreshed.name}:\n"
        f"  Amount: {DEFAULT_CURRENCY}{payment.amount:,.2f}\n"
        f"  Valid until: {refreshed.valid_until}\n"
        f"  Status: {_STATUS_ICONS[refreshed.status]} {refreshed.status.value}\n"
        f"  🔖 Payment #{payment.id}"
    )


@require_role(Role.EMPLOYEE)
@rate_limited
@reply_on_error
async def history_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /history <id> - subscriber details and payment history."""
    subscriber_id = parse_id(context.args or [], label="Subscriber ID")
    subscriber = subscriber_service.get_subscriber(subscriber_id, today())
    payments = subscriber_service.payment_history(subscriber_id)
    pending = message_service.pending_count_for(subscriber_id)

    lines = [
        f"{_STATUS_ICONS[subscriber.status]} {subscriber.name} - {subscriber.vehicle_plate}",
        f"  📞 {subscriber.phone} | 🚗 {subscriber.car}",
        f"  💵 {DEFAULT_CURRENCY}{subscriber.monthly_fee:,.2f} / month",
        f"  📅 Valid until: {subscriber.valid_until or '-'}",
    ]
    if pending:
        lines.append(f"  ✉️ {pending} message(s) pending")
    lines.append("")
    if payments:
        lines.append("🧾 Payments:")
        lines.extend(f"  {p}" for p in payments)
    else:
        lines.append("🧾 No payments yet.")
    await reply_long(update, "\n".join(lines))


@require_role(Role.ADMIN)
@rate_limited
@reply_on_error
async def edit_payment_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """
    Handle /edit_payment <payment_id> <amount> <YYYY-MM-DD>.
    The subscriber's validity is not recomputed; use /set_validity for that.
    """
    args = list(context.args or [])
    payment_id = parse_id(args, label="Payment ID")
    if len(args) < 3:
        raise ValidationError("Usage: /edit_payment <payment_id> <amount> <YYYY-MM-DD>")
    payment = subscriber_service.update_payment(payment_id, args[1], parse_date(args[2]))
    await update.message.reply_text(
        f"✏️ Payment updated: {payment}\n"
        f"ℹ️ Validity of subscriber #{payment.subscriber_id} was not changed."
    )


@require_role(Role.ADMIN)
@rate_limited
@reply_on_error
async def delete_payment_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /delete_payment <payment_id>."""
    payment_id = parse_id(context.args or [], label="Payment ID")
    payment = subscriber_service.delete_payment(payment_id)
    await update.message.reply_text(
        f"🗑️ Payment #{payment_id} deleted.\n"
        f"ℹ️ Validity of subscriber #{payment.subscriber_id} was not changed."
    )


@require_role(Role.ADMIN)
@rate_limited
@reply_on_error
async def set_validity_command(update: Update, context: ContextTypes.DEFAULT_TYPE, operator: Operator) -> None:
    """Handle /set_validity <id> <YYYY-MM-DD|none>."""
    args = list(context.args or [])
    subscriber_id = parse_id(args, label="Subscriber ID")
    if len(args) < 2:
        raise ValidationError("Usage: /set_validity <id> <YYYY-MM-DD|none>")
    valid_until = None if args[1].lower() == "none" else parse_date(args[1])
    subscriber = subscriber_service.set_validity(subscriber_id, valid_until, today())
    await update.message.reply_text(f"📅 {subscriber}")
