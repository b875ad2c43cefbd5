"""Chat service for the user directory, conversations and messages"""
from sqlalchemy.orm import Session
from sqlalchemy import desc, or_, func
from typing import List, Optional
import logging

from app.config import settings
from app.core.exceptions import ConversationNotFoundError, UserNotFoundError
from app.models.chat import Conversation, UserMessage
from app.models.user import User
from app.schemas.chat import ChatUser, ConversationResponse, MessageResponse
from app.services.change_feed import ChangeFeed, change_feed, conversations_topic, messages_topic
from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def conversation_id_for(uid_a: str, uid_b: str) -> str:
    """Deterministic id for an unordered participant pair"""
    first, second = sorted([uid_a, uid_b])
    return f"{first}_{second}"


class ChatService:
    """Service for user directory and chat management"""

    def __init__(self, db: Session, feed: ChangeFeed = change_feed):
        self.db = db
        self.feed = feed

    # User directory

    def sync_user(self, uid: str, email: str, name: str) -> User:
        """Create or refresh the public directory entry for a user"""
        user = self.db.query(User).filter(User.uid == uid).first()
        if user is None:
            user = User(uid=uid, email=email, name=name)
            self.db.add(user)
            logger.info(f"Registered user {uid} in directory")
        else:
            user.email = email or user.email
            user.name = name or user.name
        user.last_seen = utc_now()
        self.db.commit()
        self.db.refresh(user)
        return user

    def search_users_by_email(self, email: str, current_uid: str) -> List[User]:
        """Exact (case-insensitive) email lookup, excluding the caller"""
        return self.db.query(User).filter(
            func.lower(User.email) == email.strip().lower(),
            User.uid != current_uid,
        ).all()

    # Conversations

    def get_or_create_conversation(self, current_user: User, other_uid: str) -> Conversation:
        """Idempotent: the same pair always maps to the same conversation"""
        other = self.db.query(User).filter(User.uid == other_uid).first()
        if not other:
            raise UserNotFoundError(other_uid)

        conversation_id = conversation_id_for(current_user.uid, other.uid)
        first, second = sorted([current_user.uid, other.uid])
        details = {
            current_user.uid: ChatUser.model_validate(current_user).model_dump(),
            other.uid: ChatUser.model_validate(other).model_dump(),
        }

        conversation = self.db.query(Conversation).filter(Conversation.id == conversation_id).first()
        if conversation is None:
            conversation = Conversation(
                id=conversation_id,
                participant_a=first,
                participant_b=second,
                participant_details=details,
            )
            self.db.add(conversation)
            logger.info(f"Created conversation {conversation_id}")
        else:
            # Merge so renamed users show their latest details
            conversation.participant_details = {**(conversation.participant_details or {}), **details}
        conversation.updated_at = utc_now()
        self.db.commit()
        self.db.refresh(conversation)

        self._publish_conversations(conversation)
        return conversation

    def get_conversation(self, conversation_id: str, uid: str) -> Conversation:
        conversation = self.db.query(Conversation).filter(
            Conversation.id == conversation_id,
            or_(Conversation.participant_a == uid, Conversation.participant_b == uid),
        ).first()
        if not conversation:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def list_conversations(self, uid: str) -> List[Conversation]:
        """Conversations of a user, most recent activity first"""
        conversations = self.db.query(Conversation).filter(
            or_(Conversation.participant_a == uid, Conversation.participant_b == uid)
        ).all()
        return sorted(
            conversations,
            key=lambda c: c.last_message_date or c.updated_at,
            reverse=True,
        )

    # Messages

    def send_message(self, conversation_id: str, sender_id: str, text: str) -> UserMessage:
        conversation = self.get_conversation(conversation_id, sender_id)

        now = utc_now()
        message = UserMessage(
            conversation_id=conversation.id,
            sender_id=sender_id,
            text=text,
            timestamp=now,
        )
        self.db.add(message)
        conversation.last_message = text
        conversation.last_message_date = now
        self.db.commit()
        self.db.refresh(message)

        self._publish_conversations(conversation)
        self.feed.publish(messages_topic(conversation.id), self.message_snapshot(conversation.id))
        return message

    def list_messages(self, conversation_id: str, limit: Optional[int] = None) -> List[UserMessage]:
        """The most recent ``limit`` messages, oldest first"""
        limit = limit or settings.CHAT_MESSAGE_WINDOW
        recent = (
            self.db.query(UserMessage)
            .filter(UserMessage.conversation_id == conversation_id)
            .order_by(desc(UserMessage.timestamp))
            .limit(limit)
            .all()
        )
        return list(reversed(recent))

    # Snapshots

    def conversation_snapshot(self, uid: str) -> List[ConversationResponse]:
        return [ConversationResponse.model_validate(c) for c in self.list_conversations(uid)]

    def message_snapshot(self, conversation_id: str) -> List[MessageResponse]:
        return [MessageResponse.model_validate(m) for m in self.list_messages(conversation_id)]

    def _publish_conversations(self, conversation: Conversation):
        for uid in conversation.participants:
            self.feed.publish(conversations_topic(uid), self.conversation_snapshot(uid))

