"""Tests for the instrument blocklist."""

import pytest
from datetime import datetime, timedelta, timezone

from strategy import BlockList


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self):
        self.now = datetime(2025, 6, 1, 12, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


class TestBlockList:
    """Tests for BlockList."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.blocklist = BlockList(expiry_days=7, clock=self.clock)

    def test_block_and_expire(self):
        """Test blocks lapse after the expiry window."""
        self.blocklist.block("GONE", "no current price available")
        assert self.blocklist.is_blocked("GONE")
        assert "GONE" in self.blocklist

        self.clock.now += timedelta(days=6, hours=23)
        assert self.blocklist.is_blocked("GONE")

        self.clock.now += timedelta(hours=1)
        assert not self.blocklist.is_blocked("GONE")
        assert self.blocklist.cleanup_expired() == 1
        assert len(self.blocklist) == 0

    def test_reblock_refreshes_expiry_and_reason(self):
        """Test blocking again extends the block and keeps the original start."""
        first = self.blocklist.block("GONE", "no price")
        self.clock.now += timedelta(days=3)
        second = self.blocklist.block("GONE", "order rejected")

        assert second.expires_at == self.clock.now + timedelta(days=7)
        assert second.blocked_at == first.blocked_at
        assert self.blocklist.get("GONE").reason == "order rejected"

    def test_days_until_expiration(self):
        """Test remaining days round up."""
        entry = self.blocklist.block("GONE", "no price")
        assert entry.days_until_expiration(self.clock.now) == 7
        assert entry.days_until_expiration(self.clock.now + timedelta(days=6, hours=1)) == 1
        assert entry.days_until_expiration(self.clock.now + timedelta(days=8)) == 0

    def test_unblock_and_ids(self):
        """Test manual unblocking."""
        self.blocklist.block("AAA", "x")
        self.blocklist.block("BBB", "y")

        assert self.blocklist.blocked_ids() == {"AAA", "BBB"}
        assert self.blocklist.unblock("AAA")
        assert not self.blocklist.unblock("AAA")
        assert self.blocklist.blocked_ids() == {"BBB"}

    def test_reason_required(self):
        """Test empty reasons are rejected."""
        with pytest.raises(ValueError):
            self.blocklist.block("AAA", "")

    def test_invalid_expiry(self):
        """Test the expiry window must be positive."""
        with pytest.raises(ValueError):
            BlockList(expiry_days=0)
