"""Device registry, liveness evaluation and print dispatch"""
from sqlalchemy.orm import Session
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
import logging

from app.config import settings
from app.core.exceptions import DeviceNotFoundError, DeviceOfflineError, PrinterNotFoundError
from app.models.device import Device, PrintJob, PrintJobStatus
from app.utils.time_utils import EPOCH, to_naive_utc, utc_now

logger = logging.getLogger(__name__)

STATUS_ONLINE = "online"
STATUS_OFFLINE = "offline"
UNNAMED_DEVICE = "Unnamed device"

# Agent document field -> accepted spellings, first match wins
DEVICE_FIELD_ALIASES: Dict[str, Sequence[str]] = {
    "name": ("name", "nome"),
    "printers": ("printers", "impressoras"),
    "last_heartbeat": ("lastHeartbeat", "last_heartbeat", "ultimo_visto"),
}

# Epoch values above this are treated as milliseconds
_EPOCH_MILLIS_CUTOFF = 10 ** 11


def _aliased(document: Dict[str, Any], field: str) -> Any:
    for key in DEVICE_FIELD_ALIASES[field]:
        value = document.get(key)
        if value:
            return value
    return None


def parse_heartbeat(value: Any) -> datetime:
    """Parse a heartbeat value; anything missing or unreadable is epoch zero"""
    if value is None or value == "":
        return EPOCH
    try:
        if isinstance(value, datetime):
            return to_naive_utc(value)
        if isinstance(value, (int, float)):
            seconds = value / 1000 if value > _EPOCH_MILLIS_CUTOFF else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
        if isinstance(value, str):
            return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        if isinstance(value, dict) and "seconds" in value:
            # Firestore-style timestamp export
            return parse_heartbeat(value["seconds"] + value.get("nanoseconds", 0) / 1e9)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        logger.warning(f"Unreadable heartbeat {value!r}: {e}")
    return EPOCH


def online_threshold() -> timedelta:
    return timedelta(seconds=settings.DEVICE_ONLINE_THRESHOLD_SECONDS)


def is_online(last_heartbeat: datetime, now: Optional[datetime] = None, threshold: Optional[timedelta] = None) -> bool:
    """Online iff the heartbeat is younger than the threshold"""
    now = now or utc_now()
    threshold = threshold if threshold is not None else online_threshold()
    return now - to_naive_utc(last_heartbeat) < threshold


@dataclass
class DeviceStatus:
    id: str
    name: str
    printers: List[str]
    last_heartbeat: datetime
    status: str

    @property
    def online(self) -> bool:
        return self.status == STATUS_ONLINE


def evaluate_device(device_id: str, document: Dict[str, Any], now: datetime, threshold: timedelta) -> DeviceStatus:
    if not isinstance(document, dict):
        logger.warning(f"Device {device_id} has a malformed document, treating it as empty")
        document = {}
    last_heartbeat = parse_heartbeat(_aliased(document, "last_heartbeat"))
    printers = _aliased(document, "printers") or []
    if isinstance(printers, str):
        printers = [printers]
    elif not isinstance(printers, (list, tuple)):
        printers = []
    return DeviceStatus(
        id=device_id,
        name=str(_aliased(document, "name") or UNNAMED_DEVICE),
        printers=[str(p) for p in printers],
        last_heartbeat=last_heartbeat,
        status=STATUS_ONLINE if is_online(last_heartbeat, now, threshold) else STATUS_OFFLINE,
    )


def evaluate_devices(devices: Sequence[Device], now: Optional[datetime] = None, threshold: Optional[timedelta] = None) -> List[DeviceStatus]:
    """Classify every device; online devices first, input order kept within each group"""
    now = now or utc_now()
    threshold = threshold if threshold is not None else online_threshold()
    statuses = [evaluate_device(d.id, d.document or {}, now, threshold) for d in devices]
    return sorted(statuses, key=lambda s: not s.online)


class DeviceService:
    """Read/delete access to the device registry and insert access to the print queue"""

    def __init__(self, db: Session):
        self.db = db

    def get_devices(self, now: Optional[datetime] = None) -> List[DeviceStatus]:
        devices = self.db.query(Device).order_by(Device.id).all()
        return evaluate_devices(devices, now)

    def get_device(self, device_id: str, now: Optional[datetime] = None) -> DeviceStatus:
        device = self.db.query(Device).filter(Device.id == device_id).first()
        if not device:
            raise DeviceNotFoundError(device_id)
        return evaluate_device(device.id, device.document or {}, now or utc_now(), online_threshold())

    def delete_device(self, device_id: str) -> None:
        """Remove a registry entry; queued jobs for it are left untouched"""
        device = self.db.query(Device).filter(Device.id == device_id).first()
        if not device:
            raise DeviceNotFoundError(device_id)

        self.db.delete(device)
        self.db.commit()
        logger.info(f"Device {device_id} deleted")

    def send_print_job(self, file_url: str, device_id: str, printer_name: str, now: Optional[datetime] = None) -> PrintJob:
        """
        Queue one pending print job for an online device.

        Completion is owned by the agent; nothing here polls or retries.
        """
        device = self.get_device(device_id, now)
        if not device.online:
            raise DeviceOfflineError(device_id)
        if printer_name not in device.printers:
            raise PrinterNotFoundError(device_id, printer_name)

        job = PrintJob(
            target_device_id=device_id,
            target_printer_name=printer_name,
            file_url=file_url,
            status=PrintJobStatus.PENDING,
            created_at=utc_now(),
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)

        logger.info(f"Queued print job {job.id} for {device_id}/{printer_name}")
        return job
