"""Tests for ChannelRegistry and the default registry factory."""

from unittest.mock import MagicMock

import pytest

from shared.enums import Channel

from dispatcher.config import ProviderConfig
from dispatcher.errors import UnknownChannelError
from dispatcher.senders import (
    ChannelRegistry,
    ChannelSender,
    EmailSender,
    PushSender,
    SMSSender,
    create_default_registry,
)


@pytest.fixture()
def senders() -> dict[str, MagicMock]:
    return {
        "email": MagicMock(spec=ChannelSender),
        "sms": MagicMock(spec=ChannelSender),
    }


class TestChannelRegistry:
    def test_resolve_is_case_insensitive(self, senders) -> None:
        registry = ChannelRegistry(senders)

        assert registry.resolve("EMAIL") is senders["email"]
        assert registry.resolve(" Sms ") is senders["sms"]
        assert registry.resolve(Channel.EMAIL) is senders["email"]

    def test_channels_lists_registered_only(self, senders) -> None:
        assert set(ChannelRegistry(senders).channels) == {Channel.EMAIL, Channel.SMS}

    @pytest.mark.parametrize("identifier", ["fax", "", None, 7])
    def test_unknown_identifier_raises(self, senders, identifier) -> None:
        registry = ChannelRegistry(senders)

        with pytest.raises(UnknownChannelError) as exc_info:
            registry.resolve(identifier)

        assert exc_info.value.channel == identifier

    def test_known_but_unregistered_channel_raises(self, senders) -> None:
        with pytest.raises(UnknownChannelError, match="push"):
            ChannelRegistry(senders).channel_for("push")

    def test_unknown_channel_error_is_a_key_error(self, senders) -> None:
        with pytest.raises(KeyError):
            ChannelRegistry(senders).resolve("fax")

    def test_invalid_key_at_construction(self) -> None:
        with pytest.raises(ValueError):
            ChannelRegistry({"pigeon": MagicMock(spec=ChannelSender)})

    def test_later_mutation_of_input_has_no_effect(self, senders) -> None:
        registry = ChannelRegistry(senders)
        senders["push"] = MagicMock(spec=ChannelSender)

        with pytest.raises(UnknownChannelError):
            registry.resolve("push")

    def test_close_closes_every_sender(self, senders) -> None:
        ChannelRegistry(senders).close()

        for sender in senders.values():
            sender.close.assert_called_once()


class TestCreateDefaultRegistry:
    def test_one_sender_per_channel(self) -> None:
        config = ProviderConfig(
            email_api_base_url="https://mail.example.com",
            sms_api_base_url="https://sms.example.com",
            push_api_base_url="https://push.example.com",
        )

        registry = create_default_registry(config, timeout=2.0)

        assert isinstance(registry.resolve("email"), EmailSender)
        assert isinstance(registry.resolve("sms"), SMSSender)
        assert isinstance(registry.resolve("push"), PushSender)
        assert registry.resolve("sms").base_url == "https://sms.example.com"
        registry.close()

    def test_unconfigured_senders_still_registered(self) -> None:
        config = ProviderConfig(
            email_api_base_url=None, sms_api_base_url=None, push_api_base_url=None
        )

        registry = create_default_registry(config)

        assert set(registry.channels) == {Channel.EMAIL, Channel.SMS, Channel.PUSH}
        assert registry.resolve("push").base_url is None

    def test_urls_looked_up_per_channel(self) -> None:
        config = MagicMock(spec=ProviderConfig)
        config.base_url_for.side_effect = lambda channel: f"https://{channel}.example.com"

        registry = create_default_registry(config)

        assert {c.args[0] for c in config.base_url_for.call_args_list} == {
            Channel.EMAIL,
            Channel.SMS,
            Channel.PUSH,
        }
        assert registry.resolve("push").base_url == "https://push.example.com"
        registry.close()
