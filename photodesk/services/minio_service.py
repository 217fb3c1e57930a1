"""MinIO: хранение оригиналов фотографий и ссылки на скачивание."""
import io
import uuid
from datetime import timedelta
from pathlib import Path

from minio import Minio

from photodesk.config import settings


def _client() -> Minio:
    return Minio(
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )


def ensure_bucket() -> None:
    client = _client()
    if not client.bucket_exists(settings.minio_bucket):
        client.make_bucket(settings.minio_bucket)


def upload_photo(gallery_id: str, filename: str, content_type: str, data: bytes) -> str:
    """Загружает файл в MinIO. Возвращает ключ объекта."""
    ensure_bucket()
    ext = Path(filename).suffix.lower() or ""
    key = f"galleries/{gallery_id}/{uuid.uuid4()}{ext}"
    _client().put_object(
        settings.minio_bucket,
        key,
        io.BytesIO(data),
        len(data),
        content_type=content_type,
    )
    return key


def object_url(key: str) -> str:
    """Постоянный адрес объекта (без подписи, для приватного бакета нужен presigned)."""
    scheme = "https" if settings.minio_secure else "http"
    return f"{scheme}://{settings.minio_endpoint}/{settings.minio_bucket}/{key}"


def get_file_url(key: str, expires: timedelta = timedelta(hours=1)) -> str:
    """Presigned URL для скачивания."""
    return _client().presigned_get_object(settings.minio_bucket, key, expires=expires)


def delete_file(key: str) -> None:
    _client().remove_object(settings.minio_bucket, key)
