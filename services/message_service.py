"""
services/message_service.py
---------------------------
Reminder mailbox: operators queue messages, backend admins send them by
hand (chat-app link or SMS gateway) and mark them sent.

Bulk reminders are not stored as a group. They are regrouped on read by
their exact (stripped) text.
"""

from datetime import datetime
from typing import Optional

from models.message import BulkGroup, MessageStatus, PendingMessage
from models.operator import Operator
from models.subscriber import Subscriber
from repositories.message_repo import MessageRepository
from services.sms_service import SmsResult, SmsService
from utils.errors import NotFoundError, PartialBulkFailure, TransientIOError, ValidationError
from utils.logger import get_logger
from utils.phone import whatsapp_link

logger = get_logger(__name__)


def render_template(template: str, subscriber: Subscriber) -> str:
    """Fill {name}, {fee} and {plate} in a reminder template."""
    fee = f"{subscriber.monthly_fee:f}"
    if "." in fee:
        fee = fee.rstrip("0").rstrip(".")
    return (
        template.replace("{name}", subscriber.name)
        .replace("{fee}", fee)
        .replace("{plate}", subscriber.vehicle_plate)
    )


def group_bulk(messages: list[PendingMessage]) -> list[BulkGroup]:
    """
    Group pending bulk messages by identical stripped text.

    Individual (non-bulk) and already-sent messages are ignored. Groups keep
    the order in which their text first appears in `messages`.
    """
    groups: dict[str, BulkGroup] = {}
    for m in messages:
        if not m.is_bulk or not m.is_pending:
            continue
        key = m.message.strip()
        groups.setdefault(key, BulkGroup(text=key)).messages.append(m)
    return list(groups.values())


class MessageService:
    """Business logic for the pending_messages mailbox."""

    def __init__(
        self,
        repo: Optional[MessageRepository] = None,
        sms_service: Optional[SmsService] = None,
    ):
        self.repo = repo or MessageRepository()
        self.sms = sms_service or SmsService()

    # ── QUEUE ─────────────────────────────────────────────

    def enqueue(self, message: PendingMessage) -> int:
        """
        Add a message to the queue. Duplicates are allowed.

        Returns:
            The new message id.
        """
        if not message.message.strip():
            raise ValidationError("Message text is required")
        return self.repo.add(message).id

    def queue_reminder(
        self, subscriber: Subscriber, text: str, requester: Operator, is_bulk: bool = False
    ) -> int:
        """Queue a reminder for one subscriber, snapshotting their details."""
        return self.enqueue(PendingMessage(
            subscriber_id=subscriber.id,
            subscriber_name=subscriber.name,
            subscriber_phone=subscriber.phone,
            vehicle_plate=subscriber.vehicle_plate,
            message=text,
            requested_by_user_id=requester.telegram_id,
            requested_by_username=requester.username,
            is_bulk=is_bulk,
        ))

    def queue_bulk(
        self, subscribers: list[Subscriber], template: str, requester: Operator
    ) -> int:
        """
        Queue the same templated reminder for several subscribers.

        Each insert is independent; failures are logged and skipped.

        Returns:
            Number of messages queued.
        """
        queued = 0
        for subscriber in subscribers:
            try:
                self.queue_reminder(
                    subscriber, render_template(template, subscriber), requester, is_bulk=True
                )
                queued += 1
            except TransientIOError as e:
                logger.error(f"Could not queue reminder for subscriber #{subscriber.id}: {e}")
        logger.info(f"{requester.username} queued {queued}/{len(subscribers)} bulk reminders")
        return queued

    # ── READ ──────────────────────────────────────────────

    def get_message(self, message_id: int) -> PendingMessage:
        message = self.repo.get_by_id(message_id)
        if message is None:
            raise NotFoundError(f"Message #{message_id} not found")
        return message

    def list_pending(self) -> list[PendingMessage]:
        """Pending messages, newest first."""
        return self.repo.get_all(MessageStatus.PENDING)

    def list_messages(self, status: Optional[MessageStatus] = None) -> list[PendingMessage]:
        return self.repo.get_all(status)

    def pending_count_for(self, subscriber_id: int) -> int:
        return self.repo.count_pending_for(subscriber_id)

    def bulk_groups(self) -> list[BulkGroup]:
        return group_bulk(self.list_pending())

    def find_group(self, key: int) -> BulkGroup:
        """
        Pending bulk group whose oldest message has id `key`.

        Raises:
            NotFoundError: If no current group has that key (its oldest
                message was sent or dismissed meanwhile).
        """
        for group in self.bulk_groups():
            if group.key == key:
                return group
        raise NotFoundError(f"Group #{key} not found (see /groups)")

    # ── RESOLVE ───────────────────────────────────────────

    def mark_sent(self, message_id: int, resolver: str, now: datetime) -> bool:
        """
        Transition pending -> sent.

        An already-sent message is left as it is (its resolved_at and
        resolved_by_username keep their original values).

        Returns:
            True if the message was transitioned, False if it was already sent.

        Raises:
            NotFoundError: If the message does not exist.
        """
        if self.repo.mark_sent(message_id, resolver, now):
            return True
        if self.repo.get_by_id(message_id) is None:
            raise NotFoundError(f"Message #{message_id} not found")
        logger.info(f"Message #{message_id} was already sent; nothing to do")
        return False

    def mark_group_sent(self, group: BulkGroup, resolver: str, now: datetime) -> int:
        """
        Mark every message of a bulk group as sent, one after the other.

        Earlier successes are never rolled back.

        Returns:
            Number of messages marked sent.

        Raises:
            PartialBulkFailure: If some, but not all, members failed.
            TransientIOError: If every member failed.
        """
        succeeded: list[int] = []
        failed: list[int] = []
        for message in group.messages:
            try:
                self.mark_sent(message.id, resolver, now)
                succeeded.append(message.id)
            except (TransientIOError, NotFoundError) as e:
                logger.error(f"Could not mark message #{message.id} as sent: {e}")
                failed.append(message.id)

        if failed and succeeded:
            raise PartialBulkFailure(succeeded, failed)
        if failed:
            raise TransientIOError(f"Could not mark any of {len(failed)} messages as sent")
        return len(succeeded)

    def dismiss(self, message_id: int) -> None:
        """
        Hard-delete a message whatever its status.

        Raises:
            NotFoundError: If the message does not exist.
        """
        if not self.repo.delete(message_id):
            raise NotFoundError(f"Message #{message_id} not found")

    # ── DISPATCH ──────────────────────────────────────────

    @staticmethod
    def whatsapp_link(message: PendingMessage) -> str:
        return whatsapp_link(message.subscriber_phone, message.message)

    def gateway_url(self, group: BulkGroup) -> str:
        """Gateway URL that sends the group's text to all its phones at once."""
        return self.sms.build_url(group.phones, group.text)

    def dispatch_sms(self, message_id: int, resolver: str, now: datetime) -> SmsResult:
        """
        Send one pending message by SMS, then mark it sent.

        Raises:
            NotFoundError: If the message does not exist.
            ValidationError: If the message was already sent.
            TransientIOError: If the gateway did not accept the message
                (the message stays pending).
        """
        message = self.get_message(message_id)
        if not message.is_pending:
            raise ValidationError(f"Message #{message_id} was already sent")

        result = self.sms.send([(message.subscriber_phone, message.message)])[0]
        if not result.success:
            raise TransientIOError(f"SMS to {result.phone} failed: {result.error}")
        self.mark_sent(message_id, resolver, now)
        return result

    def dispatch_group_sms(self, group: BulkGroup, resolver: str, now: datetime) -> int:
        """
        Send a bulk group's text to every member in one gateway call, then mark
        the members sent.

        Returns:
            Number of messages marked sent.

        Raises:
            TransientIOError: If the gateway call failed (nothing is marked).
            PartialBulkFailure: If some members could not be marked sent.
        """
        if not group.phones:
            raise ValidationError("Group has no valid phone numbers")
        result = self.sms.send_bulk(group.phones, group.text)
        if not result.success:
            raise TransientIOError(f"Bulk SMS failed: {result.error}")
        return self.mark_group_sent(group, resolver, now)
