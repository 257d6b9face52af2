import os
import shutil
import tempfile
import uuid
from typing import Optional

from fastapi import HTTPException, UploadFile


async def save_upload_to_tmpdir(
    upload_file: UploadFile,
    suffix: str,
    chunk_size: int = 1024 * 1024,
    max_bytes: Optional[int] = None,
) -> tuple[str, str, int]:
    """
    Stream an upload into a fresh temp dir.

    Raises:
        HTTPException(413): The upload exceeds max_bytes (temp dir removed)
    """
    tmpdir = tempfile.mkdtemp()
    path = os.path.join(tmpdir, f"{uuid.uuid4()}.{suffix}")
    total = 0
    try:
        with open(path, "wb") as dst:
            while True:
                chunk = await upload_file.read(chunk_size)
                if not chunk:
                    break
                total += len(chunk)
                if max_bytes is not None and total > max_bytes:
                    raise HTTPException(
                        status_code=413,
                        detail=f"File too large (max {max_bytes // (1024 * 1024)}MB)",
                    )
                dst.write(chunk)
    except HTTPException:
        cleanup_temp_dir(tmpdir)
        raise
    return tmpdir, path, total


def cleanup_temp_dir(tmpdir: Optional[str], label: str = "tmpdir") -> None:
    if tmpdir and os.path.exists(tmpdir):
        try:
            shutil.rmtree(tmpdir)
        except Exception as e:
            print(f"[CLEANUP] Failed to remove {label} {tmpdir}: {e}")


def parse_csv_ids(value: Optional[str]) -> Optional[list[str]]:
    if value and value.strip():
        parsed_ids = [item.strip() for item in value.split(",") if item.strip()]
        return parsed_ids or None
    return None


def upload_suffix(filename: Optional[str], allowed: tuple[str, ...]) -> str:
    """Lower-case suffix without the dot; HTTP 400 unless it is in allowed."""
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in allowed:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type {ext or '(none)'}; expected one of {', '.join(allowed)}",
        )
    return ext.lstrip(".")
