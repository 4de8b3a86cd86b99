"""
Channel Adapter Interface.

Defines the contract for outbound chat channels. The chat service relays
visitor messages to staff exclusively through this interface, whatever the
channel (Telegram group, Messenger page inbox, email).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from eshop.backend.core.utils import utc_now

DEFAULT_VISITOR_NAME = "Návštevník"


@dataclass
class RelayMessage:
    """A visitor message on its way to the staff channel."""

    session_key: str
    text: str
    visitor_name: str | None = None
    visitor_email: str | None = None
    visitor_phone: str | None = None
    subject: str | None = None
    created_at: str = field(default_factory=lambda: utc_now().isoformat())


@dataclass
class DeliveryResult:
    """Outcome of a relay. `external_message_id` is the channel's own message id."""

    channel: str
    external_message_id: str | None = None


def build_relay_text(message: RelayMessage) -> str:
    """
    Plain text shown to staff.

    The first line carries the `[CS:<key>]` tag that replies are matched on.
    """
    lines = [
        f"[CS:{message.session_key}] Nová správa z e-shop chatu",
        f"Meno: {message.visitor_name or DEFAULT_VISITOR_NAME}",
    ]
    if message.visitor_phone:
        lines.append(f"Telefón: {message.visitor_phone}")
    if message.visitor_email:
        lines.append(f"E-mail: {message.visitor_email}")
    lines.append("---")
    lines.append(message.text)
    return "\n".join(lines)


class ChannelAdapter(ABC):
    """
    Base class for all channel adapters.

    `deliver` raises ExternalServiceError when the channel rejects the
    message or cannot be reached.
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Unique channel identifier ('telegram', 'messenger', 'email')."""
        ...

    @property
    @abstractmethod
    def max_message_length(self) -> int:
        ...

    @abstractmethod
    async def deliver(self, message: RelayMessage) -> DeliveryResult:
        ...

    async def close(self) -> None:
        """Release client resources held by the adapter."""

    def format_text(self, message: RelayMessage) -> str:
        return build_relay_text(message)

    def chunk_message(self, text: str) -> list[str]:
        """
        Split a long message into channel-sized chunks.

        Splits on paragraph boundaries, then lines, then hard at the limit.
        """
        if len(text) <= self.max_message_length:
            return [text]

        chunks: list[str] = []
        remaining = text
        while remaining:
            if len(remaining) <= self.max_message_length:
                chunks.append(remaining)
                break

            window = remaining[: self.max_message_length]
            split_at = window.rfind("\n\n")
            if split_at <= 0:
                split_at = window.rfind("\n")
            if split_at <= 0:
                split_at = self.max_message_length

            chunks.append(remaining[:split_at])
            remaining = remaining[split_at:].lstrip()

        return chunks
