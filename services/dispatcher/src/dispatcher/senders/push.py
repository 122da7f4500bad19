"""Push notification channel sender."""

from shared.enums import Channel

from dispatcher.senders.http import HttpChannelSender


class PushSender(HttpChannelSender):
    """Delivers through the push provider's HTTP API (FCM/APNs relay)."""

    channel = Channel.PUSH
    recipient_field = "device_token"
    env_var = "PUSH_API_BASE_URL"
