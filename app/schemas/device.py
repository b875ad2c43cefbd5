"""Schemas for devices and print jobs"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class DeviceResponse(BaseModel):
    """Registered print agent with derived liveness"""
    id: str
    name: str
    status: str  # online | offline
    printers: List[str]
    last_heartbeat: datetime
    selectable: bool


class DeviceListResponse(BaseModel):
    devices: List[DeviceResponse]
    online: int
    total: int


class DeviceDeleteResponse(BaseModel):
    success: bool
    message: str


class PrintJobCreate(BaseModel):
    """Print request; either a file id from the vault or a raw URL"""
    printer_name: str = Field(..., min_length=1, max_length=255)
    file_id: Optional[str] = None
    file_url: Optional[str] = None


class PrintJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    target_device_id: str
    target_printer_name: str
    file_url: str
    status: str
    created_at: datetime
