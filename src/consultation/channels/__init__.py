"""Message channels for transcript broadcast and private tip delivery."""

from src.consultation.channels.base import ChatChannel, DataPublisher
from src.consultation.channels.general import GENERAL_CHANNEL_ID, GeneralChatChannel
from src.consultation.channels.livekit_publisher import LiveKitDataPublisher
from src.consultation.channels.manager import ChannelManager
from src.consultation.channels.private import PrivateChatChannel

__all__ = [
    "ChatChannel",
    "DataPublisher",
    "GENERAL_CHANNEL_ID",
    "GeneralChatChannel",
    "PrivateChatChannel",
    "ChannelManager",
    "LiveKitDataPublisher",
]
