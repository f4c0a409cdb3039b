"""Tests for the in-memory broker."""

import pytest

from logingest.errors import FetchError, MetadataError
from logingest.offset import OffsetRange, PartitionKey
from logingest.source.broker import InMemoryBroker


@pytest.fixture
def broker():
    broker = InMemoryBroker()
    broker.create_topic("events", partitions=2)
    return broker


class TestInMemoryBroker:
    """Test InMemoryBroker."""

    def test_create_topic(self, broker):
        """Test partitions of a new topic."""
        assert broker.list_partitions("events") == {
            PartitionKey("events", 0),
            PartitionKey("events", 1),
        }

    def test_create_duplicate_topic(self, broker):
        """Test topic names are unique."""
        with pytest.raises(ValueError):
            broker.create_topic("events")

    def test_create_topic_without_partitions(self):
        """Test topic needs at least one partition."""
        with pytest.raises(ValueError):
            InMemoryBroker().create_topic("empty", partitions=0)

    def test_unknown_topic(self, broker):
        """Test metadata lookups for a missing topic."""
        with pytest.raises(MetadataError):
            broker.list_partitions("missing")

    def test_append_assigns_offsets(self, broker):
        """Test offsets increase per partition."""
        assert broker.append("events", 0, b"a") == 0
        assert broker.append("events", 0, b"b") == 1
        assert broker.append("events", 1, b"c") == 0

    def test_watermarks(self, broker):
        """Test earliest and latest offsets."""
        for i in range(4):
            broker.append("events", 0, b"x")
        broker.truncate("events", 0, 3)

        partitions = broker.list_partitions("events")

        assert broker.earliest_offsets(partitions) == {
            PartitionKey("events", 0): 3,
            PartitionKey("events", 1): 0,
        }
        assert broker.latest_offsets(partitions) == {
            PartitionKey("events", 0): 4,
            PartitionKey("events", 1): 0,
        }

    def test_add_partitions(self, broker):
        """Test adding partitions to a topic."""
        broker.add_partitions("events", 2)

        assert len(broker.list_partitions("events")) == 4

    def test_fetch_ranges(self, broker):
        """Test fetching exactly the records of each range."""
        for i in range(5):
            broker.append("events", 0, f"p0-{i}".encode(), timestamp=i)
        for i in range(3):
            broker.append("events", 1, f"p1-{i}".encode(), timestamp=i)

        records = broker.fetch([
            OffsetRange(PartitionKey("events", 0), 1, 4),
            OffsetRange(PartitionKey("events", 1), 2, 3),
        ])

        assert [(r.partition, r.offset) for r in records] == [(0, 1), (0, 2), (0, 3), (1, 2)]
        assert records[0].value == b"p0-1"
        assert records[0].timestamp == 1

    def test_fetch_after_truncation(self, broker):
        """Test fetch offsets stay absolute after truncation."""
        for i in range(6):
            broker.append("events", 0, f"{i}".encode())
        broker.truncate("events", 0, 4)

        records = broker.fetch([OffsetRange(PartitionKey("events", 0), 4, 6)])

        assert [r.value for r in records] == [b"4", b"5"]

    def test_fetch_truncated_range(self, broker):
        """Test fetching records no longer retained."""
        for i in range(6):
            broker.append("events", 0, b"x")
        broker.truncate("events", 0, 4)

        with pytest.raises(FetchError):
            broker.fetch([OffsetRange(PartitionKey("events", 0), 2, 6)])

    def test_fetch_past_head(self, broker):
        """Test fetching beyond the head offset."""
        broker.append("events", 0, b"x")

        with pytest.raises(FetchError):
            broker.fetch([OffsetRange(PartitionKey("events", 0), 0, 2)])

    def test_fetch_unknown_topic(self, broker):
        """Test fetching from a missing topic."""
        with pytest.raises(FetchError):
            broker.fetch([OffsetRange(PartitionKey("missing", 0), 0, 1)])
