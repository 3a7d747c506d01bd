"""Single-recipient channel."""

from typing import Any

from src.consultation.channels.base import ChatChannel, DataPublisher
from src.consultation.models import ChannelType


class PrivateChatChannel(ChatChannel):
    """Channel whose audience is exactly one identity, fixed at creation."""

    channel_type = ChannelType.PRIVATE

    def __init__(self, publisher: DataPublisher, target_identity: str) -> None:
        super().__init__(publisher, f"private_{target_identity}")
        self.target_identity = target_identity
        self._audience = frozenset({target_identity})

    @property
    def audience(self) -> frozenset[str]:
        return self._audience

    async def send(self, content: Any, topic: str = "tip") -> None:
        message: dict[str, Any] = {"type": topic, "targetParticipant": self.target_identity}
        if isinstance(content, dict):
            message.update(content)
        else:
            message["content"] = content

        await self._publish(message, topic=topic, destination_identities=[self.target_identity])
