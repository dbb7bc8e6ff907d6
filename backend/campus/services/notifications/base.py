"""
Campus Portal Backend — Notification Sender Interface
=======================================================

What:  Contract shared by outbound messaging collaborators (WhatsApp, email).
How:   Concrete senders implement `send(target, message) -> bool` and handle
       their own retries. They report delivery failure by returning False;
       they raise only for programming errors.
Who:   Called by the notification routes.
"""

from abc import ABC, abstractmethod


class NotificationSender(ABC):
    """
    Abstract interface for one outbound message channel.

    Contract:
        - send() returns True when the provider accepted the message
        - Unconfigured senders log the problem and return False, except where
          a sender documents a development fallback
        - Transport errors are retried inside the implementation, then logged
    """

    channel: str = "unknown"

    @abstractmethod
    async def send(self, target: str, message: str) -> bool:
        """
        Deliver `message` to `target`.

        Args:
            target:  Channel-specific address (phone number, email address)
            message: Message body

        Returns:
            bool: True if the provider accepted the message.
        """
        ...

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when the credentials needed to reach the provider are present."""
        ...
