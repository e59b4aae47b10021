"""
Unit tests for Token Tracker (core/tracker.py)

Tests:
- Aggregation invariant
- Threshold / delay / two-transaction confirmation gate
- Removal after confirmation and fresh restart
"""

import pytest

from launch_monitor.core.models import ConfirmedLaunchEvent
from launch_monitor.core.tracker import TokenTracker


MINT = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"


@pytest.fixture
def tracker(clock, mock_logger):
    return TokenTracker(
        min_value_to_track=5.0,
        confirmation_delay_ms=2000,
        clock=clock,
        logger=mock_logger
    )


class TestRecording:
    """Test per-mint aggregation"""

    def test_new_identity_starts_tracking(self, tracker, clock):
        token = tracker.record(MINT, "sigA", 3.0)

        assert MINT in tracker
        assert token.first_seen == clock.now
        assert token.transaction_count == 1
        assert token.accumulated_amount == 3.0

    def test_known_identity_accumulates(self, tracker, clock):
        tracker.record(MINT, "sigA", 3.0)
        clock.advance(0.5)
        token = tracker.record(MINT, "sigB", 1.25)

        assert len(tracker) == 1
        assert token.accumulated_amount == pytest.approx(4.25)
        assert token.last_checked == clock.now
        assert [t.signature for t in token.transactions] == ["sigA", "sigB"]

    def test_accumulated_matches_sum_after_every_mutation(self, tracker, clock):
        amounts = [0.01, 2.5, 0.3, 1.7, 0.01]
        for i, amount in enumerate(amounts):
            clock.advance(0.1)
            token = tracker.record(MINT, f"sig{i}", amount)
            assert token.accumulated_amount == pytest.approx(sum(t.amount for t in token.transactions))
            assert token.first_seen == token.transactions[0].observed_at

    def test_identities_are_independent(self, tracker):
        other = "So11111111111111111111111111111111111111112"
        tracker.record(MINT, "sigA", 3.0)
        tracker.record(other, "sigB", 1.0)

        assert sorted(tracker.identities()) == sorted([MINT, other])
        assert tracker.get(other).accumulated_amount == 1.0


class TestConfirmation:
    """Test the confirmation gate"""

    def test_two_transactions_over_threshold_after_delay(self, tracker, clock):
        tracker.record(MINT, "sigA", 3.0)
        clock.advance(0.5)
        tracker.record(MINT, "sigB", 3.0)
        clock.advance(1.6)  # t = 2.1s

        events = tracker.scan()

        assert len(events) == 1
        event = events[0]
        assert isinstance(event, ConfirmedLaunchEvent)
        assert event.identity == MINT
        assert event.accumulated_amount == 6.0
        assert event.transaction_count == 2
        assert event.source == "pumpfun"
        assert event.signatures == ("sigA", "sigB")
        assert event.observed_at == clock.now

    def test_not_confirmed_before_delay(self, tracker, clock):
        tracker.record(MINT, "sigA", 3.0)
        clock.advance(0.5)
        tracker.record(MINT, "sigB", 3.0)
        clock.advance(1.0)  # t = 1.5s

        assert tracker.scan() == []
        assert MINT in tracker

    def test_delay_boundary_is_inclusive(self, tracker, clock):
        tracker.record(MINT, "sigA", 2.5)
        tracker.record(MINT, "sigB", 2.5)
        clock.advance(2.0)

        assert len(tracker.scan()) == 1

    def test_single_large_transaction_never_confirms(self, tracker, clock):
        tracker.record(MINT, "sigA", 6.0)

        for _ in range(10):
            clock.advance(60)
            assert tracker.scan() == []

        assert MINT in tracker

    def test_below_threshold_never_confirms(self, tracker, clock):
        tracker.record(MINT, "sigA", 2.0)
        clock.advance(0.1)
        tracker.record(MINT, "sigB", 2.0)
        clock.advance(10)

        assert tracker.scan() == []

    def test_custom_minimum_transaction_count(self, clock, mock_logger):
        tracker = TokenTracker(
            min_value_to_track=5.0,
            confirmation_delay_ms=0,
            min_transactions=1,
            clock=clock,
            logger=mock_logger
        )
        tracker.record(MINT, "sigA", 6.0)

        assert len(tracker.scan()) == 1


class TestLifecycle:
    """Test removal after confirmation"""

    def test_confirmed_token_is_removed_and_fires_once(self, tracker, clock):
        tracker.record(MINT, "sigA", 3.0)
        tracker.record(MINT, "sigB", 3.0)
        clock.advance(3)

        assert len(tracker.scan()) == 1
        assert MINT not in tracker
        assert tracker.scan() == []

    def test_reappearing_identity_restarts_from_zero(self, tracker, clock):
        tracker.record(MINT, "sigA", 3.0)
        tracker.record(MINT, "sigB", 3.0)
        clock.advance(3)
        tracker.scan()

        token = tracker.record(MINT, "sigC", 0.5)

        assert token.accumulated_amount == 0.5
        assert token.transaction_count == 1
        assert token.first_seen == clock.now

    def test_event_is_a_snapshot(self, tracker, clock):
        tracker.record(MINT, "sigA", 3.0)
        tracker.record(MINT, "sigB", 3.0)
        clock.advance(3)
        event = tracker.scan()[0]

        tracker.record(MINT, "sigC", 10.0)

        assert event.accumulated_amount == 6.0
        with pytest.raises(AttributeError):
            event.accumulated_amount = 1.0

    def test_clear(self, tracker):
        tracker.record(MINT, "sigA", 3.0)
        tracker.clear()

        assert len(tracker) == 0
