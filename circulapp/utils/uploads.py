"""Stockage des images sur disque / Image storage on disk."""

import uuid
from pathlib import Path

from fastapi import HTTPException, UploadFile

from circulapp.config import settings


async def read_image(file: UploadFile) -> tuple[bytes, str]:
    """Lire et valider une image / Read and validate an image. Returns (content, mime)."""
    mime = file.content_type or ""
    if not mime.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files are accepted")

    content = await file.read()
    if len(content) > settings.MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"Image too large (max {settings.MAX_IMAGE_SIZE // (1024 * 1024)} MB)",
        )
    return content, mime


def store_image(content: bytes, mime: str, subdir: str) -> tuple[str, str]:
    """Sauvegarder sur disque / Save to disk. Returns (public url, stored filename)."""
    ext = mime.split("/")[-1].replace("jpeg", "jpg")
    unique_name = f"{uuid.uuid4().hex[:12]}.{ext}"
    target_dir = Path(settings.UPLOAD_DIR) / subdir
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / unique_name).write_bytes(content)
    return f"/uploads/{subdir}/{unique_name}", unique_name
