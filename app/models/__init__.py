"""Database models"""
from app.models.user import User
from app.models.file import VaultFile
from app.models.device import Device, PrintJob
from app.models.chat import Conversation, UserMessage

__all__ = [
    "User",
    "VaultFile",
    "Device",
    "PrintJob",
    "Conversation",
    "UserMessage",
]
