"""
Tests for the ORM mapping.
"""

import warnings

from sqlalchemy.orm import configure_mappers

from app.models.event import Event
from app.models.registration import Registration


def test_mappers_configure_cleanly():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        configure_mappers()

    # Counts are aggregated in queries; no ORM navigation between the tables
    assert not Event.__mapper__.relationships
    assert not Registration.__mapper__.relationships


def test_one_confirmed_registration_per_email_index():
    index = next(i for i in Registration.__table__.indexes if i.name == "uq_registrations_event_email_confirmed")
    assert index.unique
    assert [c.name for c in index.columns] == ["event_id", "email"]
