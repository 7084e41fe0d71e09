"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

PAGE_SIZE = 10
DEFAULT_ATTRIBUTION_SUFFIX = "\n\nPowered By: [SAB KUCH]"
DEFAULT_BUTTON_PREFIX = "[SAB KUCH] "


@dataclass(frozen=True)
class DeliveryConfig:
    """Caption and button branding applied when results are rendered."""

    attribution_suffix: str = DEFAULT_ATTRIBUTION_SUFFIX
    button_prefix: str = DEFAULT_BUTTON_PREFIX


@dataclass(frozen=True)
class IOConfig:
    """Timeouts and retry bounds for store and gateway calls."""

    store_timeout_seconds: float = 5.0
    gateway_timeout_seconds: float = 15.0
    retries: int = 2
    backoff_seconds: float = 0.5
