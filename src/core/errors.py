"""Exception types raised across the bridge."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for bridge errors."""


class TransportError(BridgeError):
    """Sending to Telegram failed (network or API error)."""


class ConnectionClosedError(BridgeError):
    """The WhatsApp session closed before it ever reached the open state."""
