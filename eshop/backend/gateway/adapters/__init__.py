"""Channel Adapter Interface. Re-exports from base."""

from eshop.backend.gateway.adapters.base import (
    ChannelAdapter,
    DeliveryResult,
    RelayMessage,
    build_relay_text,
)

__all__ = [
    "ChannelAdapter",
    "DeliveryResult",
    "RelayMessage",
    "build_relay_text",
]
