"""
Validation vocabularies and limits shared by schemas, services and models.
"""

from enum import Enum


class Gender(str, Enum):
    FEMALE = "female"
    MALE = "male"
    NON_BINARY = "non-binary"
    PREFER_NOT_TO_SAY = "prefer-not-to-say"


class LocationPreference(str, Enum):
    LAGOS = "lagos"
    IBADAN = "ibadan"


class RegistrationStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


VALID_GENDERS = frozenset(g.value for g in Gender)
VALID_LOCATIONS = frozenset(loc.value for loc in LocationPreference)

NAME_MAX = 200
EMAIL_MAX = 255
PHONE_MIN = 10
PHONE_MAX = 15
PROFESSION_MAX = 200
NOTES_MAX = 200
TICKET_MAX = 64

# Cache keys for the derived read views
EVENTS_LIST_CACHE_KEY = "events:all_with_counts"


def event_detail_cache_key(event_id: str) -> str:
    return f"event:{event_id}:with_count"
