"""Remote printing models

Device rows are written by the external print agent as schemaless documents;
this service only reads and deletes them. Print jobs are inserted here and
consumed by the agent.
"""
from sqlalchemy import Column, String, DateTime, Text, JSON
import uuid
from app.database import Base
from app.utils.time_utils import utc_now


class PrintJobStatus:
    PENDING = "pending"
    PRINTED = "printed"
    ERROR = "error"

    ALL = (PENDING, PRINTED, ERROR)


class Device(Base):
    """Device registry entry (heartbeat document)"""

    __tablename__ = "devices"

    id = Column(String(128), primary_key=True)
    document = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self):
        return f"<Device(id={self.id})>"


class PrintJob(Base):
    """Print queue entry"""

    __tablename__ = "print_jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    target_device_id = Column(String(128), nullable=False, index=True)  # No FK: devices may vanish
    target_printer_name = Column(String(255), nullable=False)
    file_url = Column(Text, nullable=False)
    status = Column(String(20), default=PrintJobStatus.PENDING, nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f"<PrintJob(id={self.id}, device={self.target_device_id}, status={self.status})>"
