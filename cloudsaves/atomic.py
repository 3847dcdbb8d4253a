"""Atomic file writes for the Cloud Saves config document.

The config file holds the access token and the save pointers, so a crash
mid-write must never leave it truncated. Writes go to a temp file in the
same directory and are moved into place with ``os.replace``.

Security:
- Files are created with 0o600 permissions by default
- Parent directories are created with 0o700 permissions
- Temp files are removed on failure
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from cloudsaves.errors import CloudSavesError, Err, Ok, Result

logger = logging.getLogger(__name__)


def atomic_write_text(
    path: Path,
    content: str,
    mode: int = 0o600,
) -> Result[Path, CloudSavesError]:
    """Atomically write text content to a file.

    Args:
        path: Target file path
        content: Text content to write
        mode: File permissions (default 0o600 - owner read/write only)

    Returns:
        Ok(path) on success, Err(CloudSavesError) on failure
    """
    path = Path(path)
    temp_path: str | None = None

    try:
        path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)

        # Same directory as the target, otherwise the rename is not atomic
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}_",
            suffix=f"{path.suffix}.tmp",
        )

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(temp_path, mode)
            os.replace(temp_path, path)
            logger.debug(f"Atomic write complete: {path}")
            return Ok(path)
        except Exception:
            _cleanup_temp(temp_path)
            raise

    except PermissionError as e:
        logger.error(f"Permission denied writing {path}: {e}")
        return Err(
            CloudSavesError(
                code="ATOMIC_PERMISSION_DENIED",
                message=f"Permission denied writing to {path}",
                context={"path": str(path)},
            )
        )

    except OSError as e:
        logger.error(f"OS error writing {path}: {e}")
        return Err(
            CloudSavesError(
                code="ATOMIC_WRITE_FAILED",
                message=f"Failed to write {path}: {e}",
                context={"path": str(path), "error": str(e)},
            )
        )


def atomic_write_json(
    path: Path,
    data: Any,
    mode: int = 0o600,
    indent: int | None = 2,
    ensure_ascii: bool = False,
) -> Result[Path, CloudSavesError]:
    """Atomically write JSON data to a file.

    Args:
        path: Target file path
        data: Data to serialize as JSON
        mode: File permissions (default 0o600)
        indent: JSON indentation (default 2, None for compact)
        ensure_ascii: Escape non-ASCII characters (default False)

    Returns:
        Ok(path) on success, Err(CloudSavesError) on failure
    """
    try:
        content = json.dumps(data, indent=indent, ensure_ascii=ensure_ascii)
    except (TypeError, ValueError) as e:
        logger.error(f"JSON serialization failed: {e}")
        return Err(
            CloudSavesError(
                code="JSON_SERIALIZATION_FAILED",
                message=f"Failed to serialize data to JSON: {e}",
                context={"error": str(e)},
            )
        )

    return atomic_write_text(path, content, mode)


def _cleanup_temp(temp_path: str | None) -> None:
    """Remove a leftover temp file, ignoring errors."""
    if temp_path is None:
        return

    try:
        os.unlink(temp_path)
        logger.debug(f"Cleaned up temp file: {temp_path}")
    except OSError:
        # Already gone
        pass
