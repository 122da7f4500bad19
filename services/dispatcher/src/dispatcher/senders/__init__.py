"""Channel registry: the closed Channel -> ChannelSender table used at dispatch time."""

from collections.abc import Mapping
from types import MappingProxyType

from shared.enums import Channel

from dispatcher.config import ProviderConfig
from dispatcher.errors import UnknownChannelError
from dispatcher.senders.base import ChannelPayload, ChannelSender, SendResult
from dispatcher.senders.email import EmailSender
from dispatcher.senders.push import PushSender
from dispatcher.senders.sms import SMSSender

__all__ = [
    "ChannelPayload",
    "ChannelRegistry",
    "ChannelSender",
    "EmailSender",
    "PushSender",
    "SMSSender",
    "SendResult",
    "create_default_registry",
]


class ChannelRegistry:
    """Maps channels to sender instances; fixed at construction."""

    def __init__(self, senders: Mapping[str, ChannelSender]) -> None:
        table: dict[Channel, ChannelSender] = {}
        for key, sender in senders.items():
            table[Channel.parse(key)] = sender
        self._senders = MappingProxyType(table)

    @property
    def channels(self) -> tuple[Channel, ...]:
        return tuple(self._senders)

    def channel_for(self, identifier: object) -> Channel:
        """Normalize *identifier* to a registered channel.

        Raises UnknownChannelError for values outside the channel set and
        for channels this registry has no sender for.
        """
        try:
            channel = Channel.parse(identifier)
        except ValueError:
            raise UnknownChannelError(identifier) from None
        if channel not in self._senders:
            raise UnknownChannelError(identifier)
        return channel

    def resolve(self, identifier: object) -> ChannelSender:
        """Return the sender for a channel identifier (case-insensitive)."""
        return self._senders[self.channel_for(identifier)]

    def close(self) -> None:
        for sender in self._senders.values():
            sender.close()


def create_default_registry(
    provider_config: ProviderConfig | None = None,
    timeout: float = 10.0,
) -> ChannelRegistry:
    """Create a registry with the three HTTP senders."""
    config = provider_config or ProviderConfig()
    return ChannelRegistry({
        cls.channel: cls(config.base_url_for(cls.channel), timeout=timeout)
        for cls in (EmailSender, SMSSender, PushSender)
    })
