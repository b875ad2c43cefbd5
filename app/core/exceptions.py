"""Domain exceptions raised by services and translated to HTTP errors by routers"""
from typing import List, Optional


class VaultError(Exception):
    """Base class for CloudVault errors; ``message`` is safe to show to users"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(VaultError):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class BlobStorageError(VaultError):
    pass


class BlobNotFoundError(BlobStorageError):
    pass


class FileRecordNotFoundError(VaultError):
    def __init__(self, file_id: str):
        super().__init__("File not found or access denied")
        self.file_id = file_id


class ContentFetchError(VaultError):
    """A single retrieval strategy failed"""

    def __init__(self, stage: str, reason: str):
        super().__init__(f"{stage}: {reason}")
        self.stage = stage
        self.reason = reason


class ContentUnavailableError(VaultError):
    """Every retrieval strategy failed"""

    def __init__(self, failures: List[ContentFetchError]):
        super().__init__(
            "Could not retrieve the file content for analysis. "
            "Upload the file again to enable immediate analysis."
        )
        self.failures = failures


class AnalysisError(VaultError):
    pass


class DeviceNotFoundError(VaultError):
    def __init__(self, device_id: str):
        super().__init__("Device not found")
        self.device_id = device_id


class DeviceOfflineError(VaultError):
    def __init__(self, device_id: str):
        super().__init__("Device is offline and cannot receive print jobs")
        self.device_id = device_id


class PrinterNotFoundError(VaultError):
    def __init__(self, device_id: str, printer_name: str):
        super().__init__(f"Printer '{printer_name}' is not available on this device")
        self.device_id = device_id
        self.printer_name = printer_name


class ConversationNotFoundError(VaultError):
    def __init__(self, conversation_id: str):
        super().__init__("Conversation not found or access denied")
        self.conversation_id = conversation_id


class UserNotFoundError(VaultError):
    def __init__(self, uid: str):
        super().__init__("User not found")
        self.uid = uid
