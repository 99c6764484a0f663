"""
Reminder delivery: channel senders and the dispatch engine.
"""

from anitrack_backend.notifications.channels import (
    ChannelDeliveryError,
    DiscordWebhookSender,
    MappingOwnerDirectory,
    SmtpEmailSender,
)
from anitrack_backend.notifications.dispatch import DispatchSummary, ReminderDispatcher, is_due

__all__ = [
    "ChannelDeliveryError",
    "DiscordWebhookSender",
    "DispatchSummary",
    "MappingOwnerDirectory",
    "ReminderDispatcher",
    "SmtpEmailSender",
    "is_due",
]
