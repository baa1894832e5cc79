"""Tests for deterministic symbol -> partition routing."""

import pytest

from cryptodp.bus.partition import partition_for_symbol, symbol_hash


class TestSymbolHash:
    def test_known_values(self) -> None:
        assert symbol_hash("BTC") == 66097
        assert symbol_hash("ETH") == 68985
        assert symbol_hash("") == 0

    def test_wraps_to_signed_32_bit(self) -> None:
        assert symbol_hash("polygenelubricants") == -2147483648

    def test_long_symbol_stays_in_int32_range(self) -> None:
        h = symbol_hash("X" * 200)

        assert -(2**31) <= h < 2**31


class TestPartitionForSymbol:
    def test_known_partitions(self) -> None:
        assert partition_for_symbol("BTC", 3) == 1
        assert partition_for_symbol("ETH", 3) == 0

    def test_int32_min_hash(self) -> None:
        """The most negative hash still lands inside the partition range."""
        assert partition_for_symbol("polygenelubricants", 3) == 2
        assert partition_for_symbol("polygenelubricants", 4) == 0

    @pytest.mark.parametrize("symbol", ["BTC", "ETH", "ADA", "DOT", "SOL", "DOGE"])
    def test_stable_and_in_range(self, symbol: str) -> None:
        first = partition_for_symbol(symbol, 3)

        assert 0 <= first < 3
        assert all(partition_for_symbol(symbol, 3) == first for _ in range(5))

    def test_single_partition(self) -> None:
        assert partition_for_symbol("BTC", 1) == 0

    def test_rejects_zero_partitions(self) -> None:
        with pytest.raises(ValueError):
            partition_for_symbol("BTC", 0)
