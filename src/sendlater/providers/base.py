"""Abstract provider interface for chat platforms."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from sendlater.scheduling.command import CommandResult, SendLaterOptions
from sendlater.scheduling.types import AttachmentPayload, AttachmentRef, Destination

# Handler for a parsed sendlater command: (options, invoking chat id) -> result
CommandHandler = Callable[[SendLaterOptions, str], Awaitable[CommandResult]]


class Provider(ABC):
    """Abstract interface for chat platforms.

    A provider receives ``sendlater`` commands, answers them, and is the
    transport the scheduler delivers through.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g., 'telegram')."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Establish the platform session.

        Raises:
            ConfigError: If the session cannot be established.
        """
        ...

    @abstractmethod
    async def register_commands(self) -> None:
        """Announce the bot commands to the platform.

        Raises:
            ConfigError: If the platform rejects the registration.
        """
        ...

    @abstractmethod
    async def unregister_commands(self) -> None:
        """Remove the bot commands. Failures are logged, not raised."""
        ...

    @abstractmethod
    async def start(self, handler: CommandHandler) -> None:
        """Receive commands until stopped.

        Args:
            handler: Callback for parsed sendlater commands.
        """
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop receiving and clean up resources."""
        ...

    @abstractmethod
    async def send_text(self, destination: Destination, text: str) -> str:
        """Send a text message.

        Returns:
            Sent message ID.

        Raises:
            TransportError: If the platform rejects the message.
        """
        ...

    @abstractmethod
    async def send_attachment(
        self,
        destination: Destination,
        name: str,
        content_type: str,
        data: bytes,
    ) -> str:
        """Send a single file.

        Returns:
            Sent message ID.

        Raises:
            TransportError: If the platform rejects the upload.
        """
        ...

    @abstractmethod
    async def resolve_destination(self, chat_id: str) -> Destination:
        """Look up a chat the bot can post to.

        Raises:
            TransportError: If the chat is unknown or not reachable.
        """
        ...

    @abstractmethod
    async def fetch_attachment(self, ref: AttachmentRef) -> AttachmentPayload:
        """Download an attachment referenced by a command.

        Raises:
            TransportError: If the download fails or is too large.
        """
        ...
