"""Tests for checkpoint encoding and decoding."""

import pytest

from logingest.errors import FormatError
from logingest.offset import OffsetRange, PartitionKey
from logingest.offset.checkpoint import CheckpointCodec, decode, encode


class TestDecode:
    """Test checkpoint decoding."""

    def test_empty_string(self):
        """Test empty checkpoint decodes to no offsets."""
        assert decode("") == {}

    def test_single_partition(self):
        """Test decoding one partition."""
        offsets = decode("topic,0:10")

        assert offsets == {PartitionKey("topic", 0): 10}

    def test_multiple_partitions(self):
        """Test decoding several partitions of one topic."""
        offsets = decode("clicks,0:100,1:5,2:0")

        assert offsets == {
            PartitionKey("clicks", 0): 100,
            PartitionKey("clicks", 1): 5,
            PartitionKey("clicks", 2): 0,
        }

    def test_topic_only(self):
        """Test topic without pairs decodes to no offsets."""
        assert decode("clicks") == {}

    def test_large_offsets(self):
        """Test offsets beyond 32 bits."""
        offsets = decode("t,3:9000000000")

        assert offsets[PartitionKey("t", 3)] == 9000000000

    @pytest.mark.parametrize("text", [
        "topic,badpair",
        "topic,0:",
        "topic,:5",
        "topic,a:5",
        "topic,0:b",
        "topic,0:1:2",
        "topic,0:1,",
        "topic,0:-1",
        "topic,-1:4",
        ",0:1",
        "t,0:1_000",
        "t, 0:7",
        "t,0:7 ",
        "t,+0:+3",
        "t,0:\u0663",
        "a:b,0:1",
    ])
    def test_malformed(self, text):
        """Test malformed checkpoints raise FormatError."""
        with pytest.raises(FormatError):
            decode(text)

    def test_repeated_partition(self):
        """Test a partition listed twice is rejected instead of rewound."""
        with pytest.raises(FormatError, match="repeated"):
            decode("t,0:5,0:3")


class TestEncode:
    """Test checkpoint encoding."""

    def test_uses_until_offset(self):
        """Test the end of each range is persisted."""
        ranges = [
            OffsetRange(PartitionKey("clicks", 0), 0, 40),
            OffsetRange(PartitionKey("clicks", 1), 3, 10),
        ]

        assert encode(ranges) == "clicks,0:40,1:10"

    def test_empty_range_still_encoded(self):
        """Test a range with no events keeps its offset."""
        ranges = [OffsetRange(PartitionKey("topic", 0), 10, 10)]

        assert encode(ranges) == "topic,0:10"

    def test_no_ranges(self):
        """Test encoding requires at least one range."""
        with pytest.raises(ValueError):
            encode([])

    def test_mixed_topics(self):
        """Test ranges from different topics are rejected."""
        ranges = [
            OffsetRange(PartitionKey("a", 0), 0, 1),
            OffsetRange(PartitionKey("b", 0), 0, 1),
        ]

        with pytest.raises(ValueError, match="multiple topics"):
            encode(ranges)

    @pytest.mark.parametrize("topic", ["a,b", "a:b"])
    def test_unrepresentable_topic(self, topic):
        """Test topic names containing separators."""
        ranges = [OffsetRange(PartitionKey(topic, 0), 0, 1)]

        with pytest.raises(FormatError):
            encode(ranges)


class TestRoundTrip:
    """Test decode(encode(ranges))."""

    def test_recovers_until_offsets(self):
        """Test every partition's until_offset is recovered."""
        ranges = [
            OffsetRange(PartitionKey("orders", 0), 5, 17),
            OffsetRange(PartitionKey("orders", 1), 0, 0),
            OffsetRange(PartitionKey("orders", 7), 100, 250),
        ]

        offsets = CheckpointCodec.decode(CheckpointCodec.encode(ranges))

        assert offsets == {r.partition: r.until_offset for r in ranges}
