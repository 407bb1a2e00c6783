"""
Best-effort email notifications.

The dispatcher never raises into the request path: every send is bounded
by a timeout, and failures are logged and counted, then dropped. dispatch()
starts the send as a background task and returns immediately so email
latency never shows up in registration latency.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from app.core.logging import get_logger, mask_email
from app.core.metrics import record_notification
from app.services.interfaces.email import EmailMessage, EmailSender

logger = get_logger(__name__)


class NotificationKind(str, Enum):
    REGISTRATION_NOTIFICATION = "registration_notification"  # to the operator
    REGISTRATION_CONFIRMATION = "registration_confirmation"
    CANCELLATION_CONFIRMATION = "cancellation_confirmation"
    EVENT_REMINDER = "event_reminder"


@dataclass(frozen=True)
class NotificationOutcome:
    kind: NotificationKind
    success: bool
    error: Optional[str] = None


def registration_payload(event: Any, registration: Any) -> dict:
    """Flatten an event + registration into the fields the messages need."""
    return {
        "event_id": event.id,
        "event_name": event.name,
        "event_start": event.start_date.isoformat() if event.start_date else "",
        "event_location": event.location,
        "event_venue": event.venue or "",
        "name": registration.name,
        "email": registration.email,
        "phone_number": registration.phone_number,
        "gender": registration.gender,
        "profession": registration.profession,
        "location_preference": registration.location_preference,
        "needs_directions": bool(registration.needs_directions),
        "notes": registration.notes or "",
        "ticket_number": registration.ticket_number,
    }


class NotificationDispatcher:
    def __init__(self, sender: EmailSender, admin_email: str, timeout: float = 10.0) -> None:
        self._sender = sender
        self._admin_email = admin_email
        self._timeout = timeout
        self._tasks: set[asyncio.Task] = set()

    def build_message(self, kind: NotificationKind, payload: dict) -> EmailMessage:
        event_name = payload.get("event_name", "our event")
        ticket = payload.get("ticket_number", "")

        if kind is NotificationKind.REGISTRATION_NOTIFICATION:
            lines = [f"{key}: {value}" for key, value in payload.items()]
            return EmailMessage(
                to=self._admin_email,
                subject=f"new registration: {event_name}",
                text="\n".join(lines),
            )

        if kind is NotificationKind.REGISTRATION_CONFIRMATION:
            text = (
                f"hi {payload.get('name', '')},\n\n"
                f"you're registered for {event_name} on {payload.get('event_start', '')}"
                f" at {payload.get('event_venue') or payload.get('event_location', '')}.\n"
                f"your ticket number is {ticket}. keep it to cancel if your plans change."
            )
            subject = f"your ticket for {event_name}"
        elif kind is NotificationKind.CANCELLATION_CONFIRMATION:
            text = (
                f"hi {payload.get('name', '')},\n\n"
                f"your registration {ticket} for {event_name} has been cancelled."
            )
            subject = f"registration cancelled: {event_name}"
        else:
            text = (
                f"hi {payload.get('name', '')},\n\n"
                f"a reminder that {event_name} starts on {payload.get('event_start', '')}"
                f" at {payload.get('event_venue') or payload.get('event_location', '')}.\n"
                f"your ticket number is {ticket}."
            )
            subject = f"reminder: {event_name}"

        return EmailMessage(to=payload["email"], subject=subject, text=text)

    async def notify(self, kind: NotificationKind, payload: dict) -> NotificationOutcome:
        """Send one notification, bounded by the timeout. Never raises."""
        try:
            message = self.build_message(kind, payload)
            await asyncio.wait_for(self._sender.send(message), timeout=self._timeout)
        except asyncio.TimeoutError:
            record_notification(kind.value, "timeout")
            logger.warning("notification_timeout", kind=kind.value, timeout_s=self._timeout,
                           ticket_number=payload.get("ticket_number"))
            return NotificationOutcome(kind=kind, success=False, error="timeout")
        except Exception as e:
            # Any provider failure is reported, not propagated
            record_notification(kind.value, "failed")
            logger.error("notification_failed", kind=kind.value, error=str(e),
                         ticket_number=payload.get("ticket_number"))
            return NotificationOutcome(kind=kind, success=False, error=str(e))

        record_notification(kind.value, "sent")
        logger.info("notification_sent", kind=kind.value, to=mask_email(message.to))
        return NotificationOutcome(kind=kind, success=True)

    def dispatch(self, kind: NotificationKind, payload: dict) -> asyncio.Task:
        """Fire-and-forget: schedule notify() and return without waiting."""
        task = asyncio.create_task(self.notify(kind, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> list[NotificationOutcome]:
        """
        Wait for every in-flight notification. Used on shutdown and in tests.
        Returns outcomes of the sends that were still pending; sends that had
        already finished are only visible in logs and metrics.
        """
        if not self._tasks:
            return []
        return list(await asyncio.gather(*self._tasks))

    async def close(self) -> None:
        await self.drain()
        await self._sender.close()
