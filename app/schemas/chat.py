"""Schemas for human-to-human chat"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from datetime import datetime


class ChatUser(BaseModel):
    """Public user details"""
    model_config = ConfigDict(from_attributes=True)

    uid: str
    email: str
    name: str


class ConversationCreate(BaseModel):
    """Start (or reopen) a conversation with another user"""
    other_uid: str = Field(..., min_length=1)


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    participants: List[str]
    participant_details: Dict[str, ChatUser]
    last_message: Optional[str] = None
    last_message_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConversationListResponse(BaseModel):
    conversations: List[ConversationResponse]
    total: int


class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    text: str
    timestamp: datetime


class MessageListResponse(BaseModel):
    messages: List[MessageResponse]
    conversation_id: str


class UserSearchResponse(BaseModel):
    users: List[ChatUser]
