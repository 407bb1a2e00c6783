"""
Email delivery interface.
Delivery providers stay outside the core; the dispatcher only needs send().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    text: str


class EmailSender(ABC):
    """
    Interface for outbound email.

    Implementations:
    - ResendEmailSender: Resend HTTP API
    - LoggingEmailSender: logs instead of sending (no API key configured)
    """

    @abstractmethod
    async def send(self, message: EmailMessage) -> None:
        """Deliver one message. Raises on failure."""
        pass

    async def close(self) -> None:
        pass
