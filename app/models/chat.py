"""Human-to-human chat models"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, JSON, Index
from sqlalchemy.orm import relationship
import uuid
from app.database import Base
from app.utils.time_utils import utc_now


class Conversation(Base):
    """Two-party conversation keyed by the sorted participant pair"""

    __tablename__ = "conversations"

    id = Column(String(300), primary_key=True)  # "{uid_a}_{uid_b}", uid_a < uid_b
    participant_a = Column(String(128), nullable=False, index=True)
    participant_b = Column(String(128), nullable=False, index=True)
    participant_details = Column(JSON, nullable=False, default=dict)

    # Denormalized for list sorting
    last_message = Column(Text, nullable=True)
    last_message_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    messages = relationship("UserMessage", back_populates="conversation", cascade="all, delete-orphan")

    @property
    def participants(self) -> list:
        return [self.participant_a, self.participant_b]

    def __repr__(self):
        return f"<Conversation(id={self.id})>"


class UserMessage(Base):
    """Chat message, append-only"""

    __tablename__ = "user_messages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    conversation_id = Column(String(300), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(128), nullable=False)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utc_now, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (
        Index('idx_user_messages_conversation_ts', 'conversation_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<UserMessage(id={self.id}, conversation={self.conversation_id})>"
