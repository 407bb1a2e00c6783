"""
Ticket number generation.

Shape: SWAY-<time>-<random>-<checksum>
  time      milliseconds since the epoch in upper-case base36 (sorts by issue time)
  random    4 bytes from the OS CSPRNG as 8 upper-case hex digits
  checksum  first 4 hex digits of sha256("<time>-<random>"), upper-case

Uniqueness is ultimately enforced by the store's unique constraint on
ticket_number; callers regenerate once on a collision.
"""

import hashlib
import re
import secrets
import time
from typing import Callable, Optional

TICKET_PREFIX = "SWAY"
RANDOM_BYTES = 4
CHECKSUM_LENGTH = 4

TICKET_PATTERN = re.compile(r"^SWAY-[0-9A-Z]+-[0-9A-F]{8}-[0-9A-F]{4}$")

_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def _checksum(time_part: str, random_part: str) -> str:
    digest = hashlib.sha256(f"{time_part}-{random_part}".encode()).hexdigest()
    return digest[:CHECKSUM_LENGTH].upper()


def generate_ticket_number(clock: Optional[Callable[[], float]] = None) -> str:
    now = clock() if clock else time.time()
    time_part = _base36(int(now * 1000))
    random_part = secrets.token_hex(RANDOM_BYTES).upper()
    return f"{TICKET_PREFIX}-{time_part}-{random_part}-{_checksum(time_part, random_part)}"


def is_valid_ticket_number(ticket_number: str) -> bool:
    """Check shape and checksum of a ticket number."""
    if not TICKET_PATTERN.match(ticket_number):
        return False
    _, time_part, random_part, checksum = ticket_number.split("-")
    return secrets.compare_digest(checksum, _checksum(time_part, random_part))


def normalize_ticket_number(ticket_number: str) -> str:
    return ticket_number.strip().upper()
