"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .cache import CacheBackend
from .email import EmailMessage, EmailSender

__all__ = ['CacheBackend', 'EmailMessage', 'EmailSender']
