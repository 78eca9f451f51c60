"""Unit tests for quota settings and the quota tracker."""

import logging

import numpy as np
import pytest

from jobengine.model import UNBOUNDED, QuotaSetting
from jobengine.systems.quota import (
    UNLIMITED,
    QuotaTracker,
    effective_max,
    effective_min,
)


class TestQuotaSetting:
    def test_defaults_are_unbounded(self):
        assert QuotaSetting().is_default
        assert UNBOUNDED.max == 0

    def test_rejects_negative(self):
        with pytest.raises(ValueError, match=">= 0"):
            QuotaSetting(min=-1)

    def test_rejects_min_above_max(self):
        with pytest.raises(ValueError, match="exceeds max"):
            QuotaSetting(min=3, max=2)

    def test_min_above_unlimited_max_is_fine(self):
        assert QuotaSetting(min=3, max=0).min == 3


class TestEffectiveBounds:
    @pytest.mark.parametrize(
        "quota, total, expected",
        [
            (QuotaSetting(min=2), 10, 2),
            (QuotaSetting(min=25, is_percentage=True), 10, 3),
            (QuotaSetting(min=10, is_percentage=True), 1, 1),
            (QuotaSetting(min=50, is_percentage=True), 0, 0),
            (QuotaSetting(min=2, closed=True), 10, 0),
        ],
    )
    def test_min(self, quota, total, expected):
        assert effective_min(quota, total) == expected

    @pytest.mark.parametrize(
        "quota, total, expected",
        [
            (QuotaSetting(max=0), 10, None),
            (QuotaSetting(max=4), 10, 4),
            (QuotaSetting(max=20, is_percentage=True), 12, 3),
            (QuotaSetting(closed=True), 10, 0),
        ],
    )
    def test_max(self, quota, total, expected):
        assert effective_max(quota, total) == expected


class TestQuotaTracker:
    @pytest.fixture
    def tracker(self):
        return QuotaTracker(
            ["Cooking", "Mining", "Doctor", "Art"],
            [
                QuotaSetting(min=2, max=3),
                UNBOUNDED,
                QuotaSetting(min=1),
                QuotaSetting(closed=True),
            ],
            total_workers=8,
        )

    def test_bounds(self, tracker):
        assert tracker.min_req.tolist() == [2, 0, 1, 0]
        assert tracker.max_cap.tolist() == [3, UNLIMITED, UNLIMITED, 0]

    def test_add_and_at_max(self, tracker):
        t = tracker.index("Cooking")
        for _ in range(3):
            assert not tracker.at_max(t)
            tracker.add(t)
        assert tracker.at_max(t)
        assert tracker.remaining(t) == 0

    def test_unlimited_never_at_max(self, tracker):
        t = tracker.index("Mining")
        for _ in range(50):
            tracker.add(t)
        assert not tracker.at_max(t)
        assert tracker.remaining(t) is None

    def test_closed(self, tracker):
        t = tracker.index("Art")
        assert tracker.closed(t)
        assert tracker.at_max(t)
        assert not tracker.under_min(t)

    def test_seed_counts_frozen_workers(self, tracker):
        tracker.seed(np.array([1, 0, 1, 0]))
        assert tracker.counts.tolist() == [1, 0, 1, 0]
        assert tracker.under_min(tracker.index("Cooking"))
        assert not tracker.under_min(tracker.index("Doctor"))

    def test_masks(self, tracker):
        tracker.seed(np.array([3, 0, 0, 0]))
        assert tracker.at_max_mask().tolist() == [True, False, False, True]
        assert tracker.under_min_mask().tolist() == [False, False, True, False]

    def test_status(self, tracker):
        tracker.seed(np.array([4, 0, 0, 0]))
        assert tracker.status(0) == "ABOVE MAX"
        assert tracker.status(1) == "OK"
        assert tracker.status(2) == "BELOW MIN"

    def test_log_final_counts(self, tracker, caplog):
        with caplog.at_level(logging.INFO, logger="jobengine"):
            tracker.log_final_counts()
        assert "Cooking" in caplog.text
        assert "BELOW MIN" in caplog.text
        # unbounded tasks are not listed
        assert "Mining" not in caplog.text
