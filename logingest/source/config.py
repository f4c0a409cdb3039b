"""Incremental source configuration."""

from dataclasses import dataclass
from typing import Any, Mapping

from logingest.errors import ConfigError
from logingest.offset.checkpoint import PAIR_SEPARATOR, TOPIC_SEPARATOR
from logingest.offset.reset_strategy import OffsetResetStrategy
from logingest.utils.config import Config

DEFAULT_MAX_EVENTS_TO_READ = 1000000  # 1M events max per cycle

TOPIC_KEY = "source.topic"
AUTO_OFFSET_RESET_KEY = "auto.offset.reset"
MAX_EVENTS_KEY = "source.max_events_per_cycle"


@dataclass(frozen=True)
class SourceConfig:
    """
    Configuration for an incremental log source.

    Attributes:
        topic: Topic to ingest
        auto_offset_reset: Where to start without a checkpoint
        max_events_per_cycle: Hard cap on events read in one cycle,
            applied on top of the caller's source limit
    """
    topic: str
    auto_offset_reset: OffsetResetStrategy = OffsetResetStrategy.LATEST
    max_events_per_cycle: int = DEFAULT_MAX_EVENTS_TO_READ

    def __post_init__(self):
        if not isinstance(self.topic, str) or not self.topic.strip():
            raise ConfigError(f"Missing required property: {TOPIC_KEY}")
        if TOPIC_SEPARATOR in self.topic or PAIR_SEPARATOR in self.topic:
            raise ConfigError(
                f"{TOPIC_KEY} {self.topic!r} cannot contain "
                f"{TOPIC_SEPARATOR!r} or {PAIR_SEPARATOR!r}"
            )
        object.__setattr__(
            self, "auto_offset_reset", OffsetResetStrategy.parse(self.auto_offset_reset)
        )
        max_events = _parse_int(self.max_events_per_cycle, MAX_EVENTS_KEY)
        if max_events < 1:
            raise ConfigError(f"{MAX_EVENTS_KEY} must be positive, got {max_events}")
        object.__setattr__(self, "max_events_per_cycle", max_events)

    @classmethod
    def from_properties(cls, props: Mapping[str, Any]) -> "SourceConfig":
        """
        Build configuration from flat properties.

        Args:
            props: Properties keyed by source.topic, auto.offset.reset
                and source.max_events_per_cycle

        Raises:
            ConfigError: If the topic is missing or a value is invalid
        """
        topic = props.get(TOPIC_KEY)
        if topic is None:
            raise ConfigError(f"Missing required property: {TOPIC_KEY}")

        return cls(
            topic=str(topic),
            auto_offset_reset=OffsetResetStrategy.parse(props.get(AUTO_OFFSET_RESET_KEY)),
            max_events_per_cycle=_parse_int(
                props.get(MAX_EVENTS_KEY, DEFAULT_MAX_EVENTS_TO_READ), MAX_EVENTS_KEY
            ),
        )

    @classmethod
    def from_config(cls, config: Config) -> "SourceConfig":
        """Build configuration from a loaded YAML configuration."""
        return cls.from_properties({
            key: value
            for key in (TOPIC_KEY, AUTO_OFFSET_RESET_KEY, MAX_EVENTS_KEY)
            if (value := config.get(key)) is not None
        })


def _parse_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e
