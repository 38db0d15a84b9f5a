"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ConnectionConfig:
    """Reconnect, health check and shutdown policy for the WhatsApp session."""

    max_consecutive_failures: int = 3
    failure_window_seconds: float = 600.0
    reconnect_delay_seconds: float = 0.0
    health_check_interval_seconds: float = 60.0
    health_check_timeout_seconds: float = 10.0
    shutdown_grace_seconds: float = 3.0


@dataclass(frozen=True)
class ForwardingConfig:
    """Telegram delivery settings consumed by the forwarder."""

    target_chat_id: int
    include_sender: bool = True
    topic_pattern: Optional[str] = None
