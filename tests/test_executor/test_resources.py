"""
Tests for resource translation.
"""

import pytest

from core.executor.resources import (
    CPU_PERIOD_US,
    calculate_cpu_percent,
    parse_cpu_quota,
    parse_memory_limit,
)


class TestParseMemoryLimit:
    """Test memory limit parsing."""

    @pytest.mark.parametrize(
        "limit,expected",
        [
            ("512Mi", 536870912),
            ("1Gi", 1073741824),
            ("256Ki", 262144),
            ("1048576", 1048576),
            ("0Mi", 0),
        ],
    )
    def test_valid_limits(self, limit, expected):
        """Test suffixed and bare byte counts."""
        assert parse_memory_limit(limit) == expected

    @pytest.mark.parametrize(
        "limit",
        ["", "Mi", "abcMi", "1.5Gi", "-1Mi", "512MB", " 512Mi", "1_000"],
    )
    def test_invalid_limits_are_zero(self, limit):
        """Test that unparseable limits normalize to zero."""
        assert parse_memory_limit(limit) == 0


class TestParseCpuQuota:
    """Test CPU quota parsing."""

    @pytest.mark.parametrize(
        "limit,expected",
        [
            ("1.0", 100000),
            ("0.5", 50000),
            ("2", 200000),
            ("0.25", 25000),
        ],
    )
    def test_valid_limits(self, limit, expected):
        """Test decimal core counts."""
        assert parse_cpu_quota(limit) == expected

    @pytest.mark.parametrize("limit", ["", "abc", "1 core", "nan", "inf"])
    def test_invalid_limits_are_zero(self, limit):
        """Test that unparseable limits normalize to zero."""
        assert parse_cpu_quota(limit) == 0

    def test_period(self):
        """Test the CFS period constant."""
        assert CPU_PERIOD_US == 100000


class TestCalculateCpuPercent:
    """Test CPU percent from stats samples."""

    def test_delta_over_period(self):
        """Test usage delta relative to the scheduling period."""
        stats = {
            "cpu_stats": {"cpu_usage": {"total_usage": 250000}},
            "precpu_stats": {"cpu_usage": {"total_usage": 200000}},
        }

        assert calculate_cpu_percent(stats) == 50.0

    def test_no_progress(self):
        """Test zero or negative deltas."""
        stats = {
            "cpu_stats": {"cpu_usage": {"total_usage": 100}},
            "precpu_stats": {"cpu_usage": {"total_usage": 200}},
        }

        assert calculate_cpu_percent(stats) == 0.0

    def test_missing_sections(self):
        """Test a sample without CPU sections."""
        assert calculate_cpu_percent({}) == 0.0
