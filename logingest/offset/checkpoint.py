"""
Checkpoint string codec.

A checkpoint records, per partition, the offset processed up to
(exclusive). It is persisted by the caller as a single string:

    topic,0:offset0,1:offset1,2:offset2,...

The topic name appears once and every pair belongs to it. The empty
string means "no checkpoint".
"""

import re
from typing import Dict, Sequence

from logingest.errors import FormatError
from logingest.offset import OffsetRange, PartitionKey

TOPIC_SEPARATOR = ","
PAIR_SEPARATOR = ":"

# Plain ASCII digits only: no sign, whitespace or underscores
_PAIR_PATTERN = re.compile(r"([0-9]+):([0-9]+)")


def decode(text: str) -> Dict[PartitionKey, int]:
    """
    Reconstruct partition offsets from a checkpoint string.

    Args:
        text: Checkpoint string (empty string yields an empty mapping)

    Returns:
        Mapping of partition to offset

    Raises:
        FormatError: If any partition:offset pair is malformed or a
            partition appears more than once
    """
    offsets: Dict[PartitionKey, int] = {}
    if not text:
        return offsets

    topic, *pairs = text.split(TOPIC_SEPARATOR)
    if pairs and not topic:
        raise FormatError(f"Checkpoint has no topic name: {text!r}")
    if PAIR_SEPARATOR in topic:
        raise FormatError(f"Checkpoint topic {topic!r} contains {PAIR_SEPARATOR!r}")

    for pair in pairs:
        match = _PAIR_PATTERN.fullmatch(pair)
        if match is None:
            raise FormatError(f"Malformed checkpoint pair {pair!r} in {text!r}")

        tp = PartitionKey(topic, int(match.group(1)))
        if tp in offsets:
            raise FormatError(f"Partition {tp.partition} repeated in checkpoint {text!r}")

        offsets[tp] = int(match.group(2))

    return offsets


def encode(ranges: Sequence[OffsetRange]) -> str:
    """
    Serialize the end of each range as a checkpoint string.

    The until_offset of every range is persisted, since the checkpoint
    records how far the batch has been processed.

    Args:
        ranges: Offset ranges of a single topic, at least one

    Returns:
        Checkpoint string

    Raises:
        ValueError: If ranges is empty or spans more than one topic
        FormatError: If the topic name contains a separator character
    """
    if not ranges:
        raise ValueError("Cannot encode a checkpoint without any partition")

    topic = ranges[0].topic
    if any(r.topic != topic for r in ranges):
        topics = sorted({r.topic for r in ranges})
        raise ValueError(f"Checkpoint ranges span multiple topics: {topics}")

    if TOPIC_SEPARATOR in topic or PAIR_SEPARATOR in topic:
        raise FormatError(f"Topic name {topic!r} cannot be stored in a checkpoint")

    pairs = [f"{r.partition_index}{PAIR_SEPARATOR}{r.until_offset}" for r in ranges]
    return TOPIC_SEPARATOR.join([topic] + pairs)


class CheckpointCodec:
    """Namespace for the checkpoint encode/decode pair."""

    decode = staticmethod(decode)
    encode = staticmethod(encode)
