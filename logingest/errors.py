"""
Error hierarchy for logingest.

Errors are split by whether re-running the same cycle can succeed:
- NonRetryableError: bad configuration or a corrupt checkpoint, fails
  identically on every attempt.
- RetryableError: broker or fetch failures, the next cycle may succeed
  from the same checkpoint.
"""


class IngestError(Exception):
    """Base class for all logingest errors."""
    pass


class RetryableError(IngestError):
    """Failure that leaves the previous checkpoint authoritative."""
    pass


class NonRetryableError(IngestError):
    """Failure that will repeat until configuration or data is fixed."""
    pass


class ConfigError(NonRetryableError):
    """Missing or invalid source configuration."""
    pass


class FormatError(NonRetryableError):
    """Checkpoint string cannot be parsed or represented."""
    pass


class MetadataError(RetryableError):
    """Failure listing partitions or fetching watermark offsets."""
    pass


class FetchError(RetryableError):
    """Failure materializing records for a computed batch."""
    pass
