from app.models.event import Event
from app.models.registration import Registration

__all__ = ["Event", "Registration"]
