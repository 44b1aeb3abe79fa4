from clubchat.chat.service import ChatService

__all__ = ["ChatService"]
