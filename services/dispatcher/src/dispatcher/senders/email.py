"""Email channel sender."""

from shared.enums import Channel

from dispatcher.senders.http import HttpChannelSender


class EmailSender(HttpChannelSender):
    """Delivers through the email provider's HTTP API."""

    channel = Channel.EMAIL
    recipient_field = "email"
    env_var = "EMAIL_API_BASE_URL"

    def normalize_recipient(self, recipient: str) -> str:
        local, sep, domain = recipient.rpartition("@")
        if not sep or not local or "." not in domain:
            raise ValueError(f"Invalid email address: {recipient!r}")
        return recipient
