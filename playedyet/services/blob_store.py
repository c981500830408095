"""Blob store scoped to the application's private data directory."""

import base64
import binascii
import json
from pathlib import Path
from typing import Any, Literal

import structlog

log = structlog.stdlib.get_logger()

Encoding = Literal["utf8", "base64", "binary"]


class BlobStore:
    """Key/value file storage keyed by paths relative to a private root.

    Every write replaces the whole file: data goes to a ``.tmp`` sibling
    first and is then moved over the target.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the blob store.

        Args:
            root: Application-private directory all paths are relative to
        """
        self.root = root.expanduser().resolve()
        log.info("Blob store initialized", root=str(self.root))

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve a relative path to an absolute path inside the root.

        Raises:
            ValueError: If the path is absolute or escapes the root
        """
        relative = Path(path)
        if relative.is_absolute():
            raise ValueError(f"Blob store paths must be relative: {path}")

        full_path = (self.root / relative).resolve()
        if not full_path.is_relative_to(self.root):
            raise ValueError(f"Path escapes the data directory: {path}")
        return full_path

    async def ensure_dir(self, path: str | Path) -> Path:
        """Ensure that a directory exists, creating it if necessary.

        Returns:
            The absolute directory path

        Raises:
            OSError: If the directory cannot be created or a file is in the way
        """
        full_path = self.resolve_path(path)
        try:
            if full_path.exists():
                if not full_path.is_dir():
                    raise NotADirectoryError(f"Path exists but is not a directory: {full_path}")
                return full_path

            full_path.mkdir(parents=True, exist_ok=True)
            log.debug("Directory created", path=str(full_path))
            return full_path

        except OSError as e:
            log.error("Failed to create directory", path=str(full_path), error=str(e))
            raise

    async def exists(self, path: str | Path) -> bool:
        return self.resolve_path(path).exists()

    async def write(
        self,
        path: str | Path,
        data: str | bytes,
        encoding: Encoding = "utf8",
    ) -> Path:
        """Write data to a path, replacing any previous content.

        Args:
            path: Relative destination path
            data: Text for ``utf8``, base64 text for ``base64``, raw bytes for ``binary``
            encoding: How ``data`` is turned into file bytes

        Returns:
            The absolute path written

        Raises:
            OSError: If the file cannot be written
            ValueError: If the payload does not match the encoding
        """
        full_path = self.resolve_path(path)
        payload = self._encode(data, encoding)
        temp_path = full_path.with_name(full_path.name + ".tmp")

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(payload)
            temp_path.replace(full_path)
        except OSError as e:
            log.error("Failed to write blob", path=str(full_path), error=str(e))
            temp_path.unlink(missing_ok=True)
            raise

        log.debug("Blob written", path=str(full_path), size=len(payload), encoding=encoding)
        return full_path

    async def read_text(self, path: str | Path) -> str:
        """Read a whole file as UTF-8 text.

        Raises:
            FileNotFoundError: If the file does not exist
            OSError: If the file cannot be read
        """
        full_path = self.resolve_path(path)
        try:
            # Decode bytes directly so newlines come back untranslated
            return full_path.read_bytes().decode("utf-8")
        except OSError as e:
            log.error("Failed to read blob", path=str(full_path), error=str(e))
            raise

    async def read_bytes(self, path: str | Path) -> bytes:
        full_path = self.resolve_path(path)
        try:
            return full_path.read_bytes()
        except OSError as e:
            log.error("Failed to read blob", path=str(full_path), error=str(e))
            raise

    async def write_json(self, path: str | Path, data: dict[str, Any]) -> Path:
        """Serialize a JSON object and write it.

        Raises:
            ValueError: If the data cannot be serialized
            OSError: If the file cannot be written
        """
        try:
            text = json.dumps(data, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            log.error("Failed to serialize data to JSON", path=str(path), error=str(e))
            raise ValueError(f"Cannot serialize data to JSON: {e}") from e
        return await self.write(path, text, encoding="utf8")

    async def read_json(self, path: str | Path) -> dict[str, Any]:
        """Read and parse a JSON object.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid JSON or not an object
        """
        text = await self.read_text(path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            log.error("Invalid JSON in blob", path=str(path), error=str(e))
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Expected JSON object, got {type(data).__name__}")
        return data

    @staticmethod
    def _encode(data: str | bytes, encoding: Encoding) -> bytes:
        if encoding == "binary":
            if isinstance(data, str):
                raise ValueError("binary writes require bytes")
            return bytes(data)
        if encoding == "base64":
            try:
                return base64.b64decode(data, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError(f"Invalid base64 payload: {e}") from e
        if encoding == "utf8":
            return data.encode("utf-8") if isinstance(data, str) else bytes(data)
        raise ValueError(f"Unsupported encoding: {encoding}")
