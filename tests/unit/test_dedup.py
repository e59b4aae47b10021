"""
Unit tests for Signature Filter (core/dedup.py)
"""

from launch_monitor.core.dedup import SignatureFilter
from launch_monitor.core.models import SignatureInfo


class TestSignatureFilter:
    """Test dedup and start-time filtering"""

    def test_returns_new_signatures_in_order(self, clock, mock_logger):
        sig_filter = SignatureFilter(clock=clock, logger=mock_logger)
        batch = [SignatureInfo("c"), SignatureInfo("b"), SignatureInfo("a")]

        fresh = sig_filter.filter(batch)

        assert [s.signature for s in fresh] == ["c", "b", "a"]

    def test_each_signature_returned_once(self, clock, mock_logger):
        sig_filter = SignatureFilter(clock=clock, logger=mock_logger)

        first = sig_filter.filter([SignatureInfo("a"), SignatureInfo("b")])
        second = sig_filter.filter([SignatureInfo("c"), SignatureInfo("b"), SignatureInfo("a")])
        third = sig_filter.filter([SignatureInfo("c")])

        returned = [s.signature for s in first + second + third]
        assert returned == ["a", "b", "c"]
        assert len(sig_filter) == 3

    def test_duplicates_within_one_batch(self, clock, mock_logger):
        sig_filter = SignatureFilter(clock=clock, logger=mock_logger)

        fresh = sig_filter.filter([SignatureInfo("a"), SignatureInfo("a")])

        assert len(fresh) == 1

    def test_old_block_time_is_dropped_and_not_marked(self, clock, mock_logger):
        sig_filter = SignatureFilter(start_time=clock.now, clock=clock, logger=mock_logger)
        old = SignatureInfo("old", block_time=int(clock.now) - 30)

        assert sig_filter.filter([old]) == []
        assert "old" not in sig_filter
        mock_logger.debug.assert_called()

    def test_unknown_block_time_passes(self, clock, mock_logger):
        sig_filter = SignatureFilter(start_time=clock.now, clock=clock, logger=mock_logger)

        fresh = sig_filter.filter([SignatureInfo("none", None), SignatureInfo("zero", 0)])

        assert [s.signature for s in fresh] == ["none", "zero"]

    def test_recent_block_time_passes(self, clock, mock_logger):
        sig_filter = SignatureFilter(start_time=clock.now, clock=clock, logger=mock_logger)

        fresh = sig_filter.filter([SignatureInfo("new", block_time=int(clock.now) + 1)])

        assert len(fresh) == 1

    def test_reset_clears_and_moves_cutoff(self, clock, mock_logger):
        sig_filter = SignatureFilter(clock=clock, logger=mock_logger)
        sig_filter.filter([SignatureInfo("a")])

        clock.advance(100)
        sig_filter.reset()

        assert len(sig_filter) == 0
        assert sig_filter.start_time == clock.now
        assert sig_filter.filter([SignatureInfo("a", block_time=int(clock.now) - 50)]) == []

    def test_retention_evicts_old_entries(self, clock, mock_logger):
        sig_filter = SignatureFilter(retention_s=60, clock=clock, logger=mock_logger)
        sig_filter.filter([SignatureInfo("a", block_time=int(clock.now) + 1)])
        clock.advance(30)
        sig_filter.filter([SignatureInfo("b", block_time=int(clock.now))])
        clock.advance(45)

        sig_filter.filter([])

        assert "a" not in sig_filter
        assert "b" in sig_filter

    def test_evicted_signature_is_never_returned_again(self, clock, mock_logger):
        sig_filter = SignatureFilter(retention_s=1, clock=clock, logger=mock_logger)
        info = SignatureInfo("a", block_time=int(clock.now) + 1)

        first = sig_filter.filter([info])
        clock.advance(5)
        second = sig_filter.filter([info])

        assert first == [info]
        assert second == []
        assert "a" not in sig_filter

    def test_retention_keeps_unknown_block_times(self, clock, mock_logger):
        sig_filter = SignatureFilter(retention_s=1, clock=clock, logger=mock_logger)
        sig_filter.filter([SignatureInfo("a")])
        clock.advance(10 ** 6)

        assert sig_filter.filter([SignatureInfo("a")]) == []
        assert "a" in sig_filter

    def test_no_retention_keeps_everything(self, clock, mock_logger):
        sig_filter = SignatureFilter(clock=clock, logger=mock_logger)
        sig_filter.filter([SignatureInfo("a")])
        clock.advance(10 ** 6)

        assert sig_filter.filter([SignatureInfo("a")]) == []
