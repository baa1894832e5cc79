"""Tests for RollingWindowManager."""

import pytest

from cryptodp.analysis.window import RollingWindowManager


class TestAppend:
    def test_appends_in_order(self, make_series) -> None:
        manager = RollingWindowManager(cap=10)
        for p in make_series([1.0, 2.0, 3.0]):
            manager.append(p)

        assert [p.close for p in manager.window("BTC")] == [1.0, 2.0, 3.0]
        assert manager.last_close("BTC") == 3.0

    def test_evicts_oldest_at_cap(self, make_series) -> None:
        """A window never exceeds its cap; the oldest point goes first."""
        manager = RollingWindowManager(cap=100)
        for p in make_series([float(i) for i in range(150)]):
            manager.append(p)

        window = manager.window("BTC")
        assert len(window) == 100
        assert window[0].close == 50.0
        assert window[-1].close == 149.0

    def test_symbols_are_independent(self, make_series) -> None:
        manager = RollingWindowManager(cap=3)
        for p in make_series([1.0, 2.0, 3.0, 4.0], symbol="BTC"):
            manager.append(p)
        for p in make_series([10.0], symbol="ETH"):
            manager.append(p)

        assert manager.size("BTC") == 3
        assert manager.size("ETH") == 1
        assert manager.symbols() == ["BTC", "ETH"]
        assert manager.total_points() == 4

    def test_rejects_zero_cap(self) -> None:
        with pytest.raises(ValueError):
            RollingWindowManager(cap=0)


class TestReads:
    def test_latest_returns_tail(self, make_series) -> None:
        manager = RollingWindowManager()
        for p in make_series([1.0, 2.0, 3.0, 4.0]):
            manager.append(p)

        assert [p.close for p in manager.latest("BTC", 2)] == [3.0, 4.0]

    def test_latest_empty_when_too_few(self, make_series) -> None:
        manager = RollingWindowManager()
        for p in make_series([1.0, 2.0]):
            manager.append(p)

        assert manager.latest("BTC", 5) == []
        assert manager.latest("UNKNOWN", 1) == []

    def test_window_is_a_copy(self, make_series) -> None:
        manager = RollingWindowManager()
        for p in make_series([1.0, 2.0]):
            manager.append(p)

        snapshot = manager.window("BTC")
        snapshot.clear()

        assert manager.size("BTC") == 2

    def test_unknown_symbol(self) -> None:
        manager = RollingWindowManager()

        assert manager.window("DOGE") == []
        assert manager.last_close("DOGE") is None
        assert manager.size("DOGE") == 0
