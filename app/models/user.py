"""User directory model"""
from sqlalchemy import Column, String, DateTime
from app.database import Base
from app.utils.time_utils import utc_now


class User(Base):
    """Public user entry, synced from the Firebase identity on each request"""

    __tablename__ = "users"

    uid = Column(String(128), primary_key=True)  # Firebase UID
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False)
    last_seen = Column(DateTime, default=utc_now, nullable=False)

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0] or "User"

    def __repr__(self):
        return f"<User(uid={self.uid}, email={self.email})>"
