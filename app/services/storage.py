import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

UPLOADS_FOLDER = "uploads"
SIGNED_FOLDER = "signed"


class BlobStore(Protocol):
    def read(self, ref: str) -> bytes: ...

    def write(self, ref: str, data: bytes) -> None: ...

    def exists(self, ref: str) -> bool: ...


def signed_ref(document_id: int) -> str:
    """Where the regenerated artifact of a completed document lives."""
    return f"{SIGNED_FOLDER}/{document_id}.pdf"


class LocalBlobStore:
    """Blob store on the local filesystem; refs are paths relative to ``root``."""

    def __init__(self, root):
        self.root = Path(root)

    def _path(self, ref: str) -> Path:
        path = (self.root / ref).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Blob ref escapes the storage root: {ref}")
        return path

    def read(self, ref: str) -> bytes:
        with open(self._path(ref), "rb") as f:
            return f.read()

    def write(self, ref: str, data: bytes) -> None:
        path = self._path(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        logger.debug("Stored %d bytes at %s", len(data), ref)

    def exists(self, ref: str) -> bool:
        return self._path(ref).is_file()
