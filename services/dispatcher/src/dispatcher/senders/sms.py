"""SMS channel sender."""

import re

from shared.enums import Channel

from dispatcher.senders.http import HttpChannelSender

_PHONE_SEPARATORS = re.compile(r"[\s().-]")
_PHONE_NUMBER = re.compile(r"\+?\d{6,15}")


class SMSSender(HttpChannelSender):
    """Delivers through the SMS provider's HTTP API.

    Numbers are sent in compact form: separators stripped, an optional
    leading ``+`` kept.
    """

    channel = Channel.SMS
    recipient_field = "phone_number"
    env_var = "SMS_API_BASE_URL"

    def normalize_recipient(self, recipient: str) -> str:
        compact = _PHONE_SEPARATORS.sub("", recipient)
        if not _PHONE_NUMBER.fullmatch(compact):
            raise ValueError(f"Invalid phone number: {recipient!r}")
        return compact
