# app/core/storage_utils.py
import uuid

from app.core.config import get_settings
from app.core.supabase_client import supabase_admin


def _bucket():
    # Client is created on first use so importing this module needs no credentials
    return supabase_admin().storage.from_(get_settings().STORAGE_BUCKET)


def upload_to_storage(path: str, file_bytes: bytes, content_type: str | None = None) -> str:
    """
    Upload raw bytes to Supabase Storage and return a public URL.

    If a file already exists at this path, it will be overwritten
    thanks to the 'upsert' option.

    Args:
        path: Full object path inside the bucket.
              Example: "products/<uuid>/hero/<uuid>.png"
        file_bytes: File content in bytes.
        content_type: MIME type stored with the object.

    Returns:
        Public URL to the uploaded file.

    Raises:
        Any exception raised by Supabase client if upload fails.
    """
    options = {"upsert": "true"}
    if content_type:
        options["content-type"] = content_type
    bucket = _bucket()
    bucket.upload(path, file_bytes, options)
    return bucket.get_public_url(path)


def delete_from_storage(path: str) -> None:
    """
    Delete a file from Supabase Storage by its object path (relative to bucket).
    """
    _bucket().remove([path])


def extract_path_from_public_url(url: str, bucket: str | None = None) -> str | None:
    """
    Given a public URL, extract the object path relative to the bucket.

    Example:
        https://<proj>.supabase.co/storage/v1/object/public/assets/products/p/hero.png
        -> 'products/p/hero.png'
    """
    bucket = bucket or get_settings().STORAGE_BUCKET
    marker = f"/storage/v1/object/public/{bucket}/"
    idx = url.find(marker)
    if idx == -1:
        return None
    return url[idx + len(marker) :]


def delete_public_url(url: str) -> None:
    """
    Convenience helper: delete a file by its public URL.
    No-op if the URL does not belong to this bucket.
    """
    path = extract_path_from_public_url(url)
    if path:
        delete_from_storage(path)


def generate_filename(ext: str) -> str:
    """
    Random "<uuid4>.<ext>" filename; ext is given without the dot.
    """
    return f"{uuid.uuid4()}.{ext}"
