"""
Builds the service context from settings.
Chooses the cache backend and email sender; everything else is configured
from the same Settings object at construction time.
"""

from app.core.config import Settings
from app.core.logging import get_logger
from app.infrastructure.email_sender import LoggingEmailSender, ResendEmailSender
from app.infrastructure.redis_client import connect_redis
from app.services.cache_service import MemoryCache, RedisCache
from app.services.context import ServiceContext
from app.services.interfaces.cache import CacheBackend
from app.services.interfaces.email import EmailSender
from app.services.notification_service import NotificationDispatcher
from app.services.rate_limiter import RateLimiter

logger = get_logger(__name__)


async def build_cache(settings: Settings) -> CacheBackend:
    """
    CACHE_BACKEND=redis uses Redis when it answers a ping at startup;
    otherwise (or when unset) the in-process cache is used.
    """
    if settings.CACHE_BACKEND == "redis":
        client = await connect_redis(settings.REDIS_URL)
        if client is not None:
            return RedisCache(client, prefix=settings.REDIS_PREFIX)
        logger.warning("redis_unavailable", message="Falling back to in-memory cache")
    return MemoryCache()


def build_email_sender(settings: Settings) -> EmailSender:
    if settings.RESEND_API_KEY:
        return ResendEmailSender(
            api_key=settings.RESEND_API_KEY,
            sender=settings.EMAIL_FROM,
            api_url=settings.RESEND_API_URL,
            timeout=settings.EMAIL_SEND_TIMEOUT,
        )
    logger.warning("email_provider_missing", message="Emails will be logged, not sent")
    return LoggingEmailSender()


async def build_context(settings: Settings) -> ServiceContext:
    return ServiceContext(
        settings=settings,
        cache=await build_cache(settings),
        rate_limiter=RateLimiter.from_settings(settings),
        notifier=NotificationDispatcher(
            build_email_sender(settings),
            admin_email=settings.ADMIN_EMAIL,
            timeout=settings.EMAIL_SEND_TIMEOUT,
        ),
    )
