"""Tests for default data seeding."""

from ledger.models.category import Category
from ledger.seed import DEFAULT_CATEGORIES, seed_categories


def test_seeds_empty_database(db_session):
    added = seed_categories(db_session)
    assert added == len(DEFAULT_CATEGORIES)
    assert db_session.query(Category).count() == len(DEFAULT_CATEGORIES)


def test_does_not_reseed(db_session, sample_category):
    assert seed_categories(db_session) == 0
    assert db_session.query(Category).count() == 1
