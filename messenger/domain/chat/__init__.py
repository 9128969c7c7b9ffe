"""Chat domain exports."""

from .conversations import ConversationRegistry
from .longpoll import LongPollBridge
from .rooms import RoomMembership
from .router import EventSink, FanoutRouter
from .store import MessageStore

__all__ = [
	"ConversationRegistry",
	"EventSink",
	"FanoutRouter",
	"LongPollBridge",
	"MessageStore",
	"RoomMembership",
]
