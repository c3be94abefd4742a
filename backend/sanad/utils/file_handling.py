import logging
import uuid
from pathlib import Path
from typing import Optional, Protocol

from sanad.core import exceptions
from sanad.core.config import settings

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def store(self, file_name: str, content: bytes) -> str: ...

    def resolve(self, reference: str) -> bytes: ...


class LocalBlobStore:
    """
    Keeps uploads on local disk. References are opaque to callers: the stored
    name is prefixed with a UUID so identical client filenames never collide.
    """

    def __init__(self, directory: Optional[str] = None):
        self.directory = Path(directory or settings.UPLOAD_DIRECTORY)
        self.directory.mkdir(parents=True, exist_ok=True)

    def store(self, file_name: str, content: bytes) -> str:
        # Sanitize filename to prevent directory traversal attacks
        safe_name = Path(file_name or "").name
        if not safe_name:
            raise exceptions.ValidationError("Filename cannot be empty.")

        reference = f"{uuid.uuid4().hex}_{safe_name}"
        try:
            with open(self.directory / reference, "wb") as buffer:
                buffer.write(content)
        except OSError as e:
            logger.error(f"Failed to store upload '{safe_name}': {e}", exc_info=True)
            raise exceptions.ExternalCapabilityError("blob_store", f"Could not store file '{safe_name}'.")
        return reference

    def resolve(self, reference: str) -> bytes:
        path = self.directory / Path(reference or "").name
        if not path.is_file():
            raise exceptions.ExternalCapabilityError("blob_store", f"Stored file '{reference}' not found.")
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            logger.error(f"Failed to read stored file '{reference}': {e}", exc_info=True)
            raise exceptions.ExternalCapabilityError("blob_store", f"Could not read stored file '{reference}'.")


_default_store: Optional[LocalBlobStore] = None


def get_blob_store() -> LocalBlobStore:
    global _default_store
    if _default_store is None:
        _default_store = LocalBlobStore()
    return _default_store
