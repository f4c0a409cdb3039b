"""
Offset reset strategies for sources without a checkpoint.

When no checkpoint exists, these strategies determine where each
partition starts:
- EARLIEST: oldest retained offset, replaying the whole backlog
- LATEST: current head, skipping the existing backlog
"""

from enum import Enum
from typing import Iterable, Optional

from logingest.errors import ConfigError, MetadataError
from logingest.offset import OffsetMap, PartitionKey
from logingest.source.broker import BrokerMetadataClient
from logingest.utils.logging import get_logger

logger = get_logger(__name__)


class OffsetResetStrategy(str, Enum):
    """Where to start reading when no checkpoint exists."""
    EARLIEST = "earliest"
    LATEST = "latest"

    @classmethod
    def parse(cls, value: Optional[str]) -> "OffsetResetStrategy":
        """
        Parse a configured auto.offset.reset value.

        Accepts "smallest"/"largest" and their "earliest"/"latest"
        aliases, case-insensitively. None selects LATEST.

        Raises:
            ConfigError: If the value is not recognized
        """
        if value is None:
            return cls.LATEST
        if isinstance(value, cls):
            return value

        normalized = str(value).strip().lower()
        try:
            return _ALIASES[normalized]
        except KeyError:
            raise ConfigError(
                f"Auto reset value must be one of 'smallest' or 'largest', got {value!r}"
            ) from None


_ALIASES = {
    "smallest": OffsetResetStrategy.EARLIEST,
    "earliest": OffsetResetStrategy.EARLIEST,
    "largest": OffsetResetStrategy.LATEST,
    "latest": OffsetResetStrategy.LATEST,
}


def should_reset(checkpoint: Optional[str]) -> bool:
    """True if there is no checkpoint to resume from."""
    return not checkpoint


class OffsetResetResolver:
    """
    Resolves starting offsets from broker watermarks.

    The result has exactly the domain of the requested partitions.
    """

    def __init__(self, strategy: OffsetResetStrategy = OffsetResetStrategy.LATEST):
        """
        Initialize resolver.

        Args:
            strategy: Reset strategy, or a raw configuration value
        """
        self.strategy = OffsetResetStrategy.parse(strategy)

    def resolve(
        self,
        partitions: Iterable[PartitionKey],
        broker: BrokerMetadataClient,
    ) -> OffsetMap:
        """
        Get starting offsets for partitions.

        Args:
            partitions: Partitions to start
            broker: Watermark source

        Returns:
            Mapping of partition to starting offset

        Raises:
            MetadataError: If the broker lookup fails or omits a partition
        """
        partitions = set(partitions)

        try:
            if self.strategy == OffsetResetStrategy.EARLIEST:
                offsets = broker.earliest_offsets(partitions)
            else:
                offsets = broker.latest_offsets(partitions)
        except MetadataError:
            raise
        except Exception as e:
            raise MetadataError(f"Error fetching {self.strategy.value} offsets: {e}") from e

        missing = partitions - offsets.keys()
        if missing:
            raise MetadataError(
                f"Broker returned no {self.strategy.value} offset for "
                f"{sorted(str(tp) for tp in missing)}"
            )

        resolved = {tp: offsets[tp] for tp in partitions}

        logger.info(
            "Reset offsets resolved",
            strategy=self.strategy.value,
            partitions=len(resolved),
        )

        return resolved
