"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .email_sender import LoggingEmailSender, ResendEmailSender
from .redis_client import connect_redis

__all__ = ['connect_redis', 'LoggingEmailSender', 'ResendEmailSender']
