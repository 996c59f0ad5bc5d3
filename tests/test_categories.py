"""Tests for the shared category constants."""

import pytest

from finance_tracker.engine import categories
from finance_tracker.models.records import BillFrequency


class TestCategoryConstants:
    """Lookup tables are plain immutable constants."""

    def test_frequency_labels_cover_every_frequency(self):
        assert set(categories.FREQUENCY_LABELS) == set(BillFrequency)
        assert categories.FREQUENCY_LABELS[BillFrequency.BIMONTHLY] == "Every 2 months"

    def test_frequency_labels_are_read_only(self):
        with pytest.raises(TypeError):
            categories.FREQUENCY_LABELS[BillFrequency.MONTHLY] = "Every month"

    def test_every_list_has_a_fallback(self):
        for names in (
            categories.EXPENSE_CATEGORIES,
            categories.SUBSCRIPTION_CATEGORIES,
            categories.BILL_CATEGORIES,
            categories.INCOME_SOURCES,
        ):
            assert isinstance(names, tuple)
            assert names[-1] == "Other"

    def test_synthetic_buckets_not_user_selectable(self):
        assert categories.LENDING_CATEGORY not in categories.EXPENSE_CATEGORIES
        assert categories.SUBSCRIPTIONS_CATEGORY not in categories.EXPENSE_CATEGORIES
