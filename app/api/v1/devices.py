"""Device and remote printing endpoints"""
from fastapi import APIRouter, Depends, HTTPException, status, Path
from sqlalchemy.orm import Session
import logging

from app.core.dependencies import get_current_user
from app.core.exceptions import DeviceNotFoundError, DeviceOfflineError, PrinterNotFoundError
from app.database import get_db
from app.models.user import User
from app.schemas.device import (
    DeviceDeleteResponse,
    DeviceListResponse,
    DeviceResponse,
    PrintJobCreate,
    PrintJobResponse,
)
from app.services.device_service import DeviceService
from app.services.file_service import FileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/devices", tags=["devices"])


@router.get("", response_model=DeviceListResponse)
def get_devices(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get registered print agents

    - Online devices come first
    - A device is online while its last heartbeat is recent enough
    - Offline devices are listed but not selectable for printing
    """
    try:
        devices = DeviceService(db).get_devices()

        return DeviceListResponse(
            devices=[
                DeviceResponse(
                    id=d.id,
                    name=d.name,
                    status=d.status,
                    printers=d.printers,
                    last_heartbeat=d.last_heartbeat,
                    selectable=d.online,
                )
                for d in devices
            ],
            online=sum(1 for d in devices if d.online),
            total=len(devices),
        )

    except Exception as e:
        logger.error(f"Error fetching devices: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching devices"
        )


@router.delete("/{device_id}", response_model=DeviceDeleteResponse)
def delete_device(
    device_id: str = Path(..., description="Device ID"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Remove a device from the registry

    Print jobs already queued for the device are left as they are.
    """
    try:
        DeviceService(db).delete_device(device_id)
        return DeviceDeleteResponse(success=True, message="Device deleted successfully")

    except DeviceNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.post("/{device_id}/print", response_model=PrintJobResponse, status_code=status.HTTP_201_CREATED)
def send_print_job(
    job: PrintJobCreate,
    device_id: str = Path(..., description="Device ID"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Queue a print job for a device

    - **printer_name**: one of the device's printers
    - **file_id** or **file_url**: what to print

    The job is handed to the device's agent; success means it was queued.
    """
    if job.file_id:
        record = FileService(db).get_by_file_id(job.file_id, current_user.uid)
        if not record:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found or access denied")
        file_url = record.url
    elif job.file_url:
        file_url = job.file_url
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Either file_id or file_url is required")

    try:
        print_job = DeviceService(db).send_print_job(file_url, device_id, job.printer_name)
        return PrintJobResponse.model_validate(print_job)

    except DeviceNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except DeviceOfflineError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except PrinterNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error sending print job: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error sending print job"
        )
