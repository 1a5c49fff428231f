# azure_blob.py
"""
Invoice storage on Azure Blob Storage.

Invoices live in one private container. A blob's name is its storage key,
`{owner_id}/{epoch_ms}-{random}.{ext}`; the owner prefix is what
`owns_invoice_path` checks before anything is read or signed.
"""
import logging
import os
import secrets
import string
import time
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import unquote, urlparse

from azure.core.exceptions import (
     AzureError,
     ResourceExistsError,
     ResourceNotFoundError,
     ServiceRequestError,
     ServiceResponseError,
)
from azure.storage.blob import BlobSasPermissions, BlobServiceClient, ContentSettings, generate_blob_sas

from config import Settings, get_settings
from exceptions import ConflictAlreadyExists, NotFound, UpstreamError, UpstreamTimeout
from utils.timeouts import timeout_for

logger = logging.getLogger(__name__)

SIGNED_URL_TTL_SECONDS = 3600

MIME_BY_EXT = {
     ".pdf": "application/pdf",
     ".jpg": "image/jpeg",
     ".jpeg": "image/jpeg",
     ".png": "image/png",
}

_KEY_ALPHABET = string.ascii_lowercase + string.digits


def content_type_for(path: str) -> str:
     ext = os.path.splitext(path)[1].lower()
     return MIME_BY_EXT.get(ext, "application/octet-stream")


def build_invoice_key(owner_id: str, filename: str) -> str:
     """Storage key for a new upload by `owner_id`."""
     ext = os.path.splitext(filename or "")[1].lstrip(".").lower() or "bin"
     suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(7))
     return f"{owner_id}/{int(time.time() * 1000)}-{suffix}.{ext}"


def extract_invoice_path(value: Optional[str], container: str = "invoices") -> str:
     """
     Storage key from whatever was saved in `invoice_url`.

     Accepts a bare key, a legacy public URL, a legacy signed URL, or a blob
     URL (with or without a SAS query string).
     """
     if not value:
          return ""
     for marker in (
          f"/storage/v1/object/public/{container}/",
          f"/storage/v1/object/sign/{container}/",
     ):
          if marker in value:
               return unquote(value.split(marker, 1)[1].split("?", 1)[0])
     if value.startswith(("http://", "https://")):
          path = unquote(urlparse(value).path).lstrip("/")
          prefix = f"{container}/"
          return path[len(prefix):] if path.startswith(prefix) else path
     return value


def owns_invoice_path(user_id: Optional[str], path: Optional[str]) -> bool:
     if not user_id or not path or ".." in path:
          return False
     return path.startswith(f"{user_id}/")


def _storage_error(exc: AzureError, action: str, key: str):
     detail = f"{action} {key}: {exc}"
     if isinstance(exc, ResourceNotFoundError):
          return NotFound("File not found", detail=detail)
     if isinstance(exc, ResourceExistsError):
          return ConflictAlreadyExists("File already exists", detail=detail)
     if isinstance(exc, (ServiceRequestError, ServiceResponseError)) and "timeout" in str(exc).lower():
          return UpstreamTimeout(detail=detail)
     return UpstreamError(detail=detail)


class InvoiceStorage:
     """One blob container holding partner invoices."""

     def __init__(self, account: Optional[str], key: Optional[str], container: str = "invoices"):
          self.account = account
          self.key = key
          self.container = container
          self._service: Optional[BlobServiceClient] = None

     @classmethod
     def from_settings(cls, settings: Optional[Settings] = None) -> "InvoiceStorage":
          settings = settings or get_settings()
          return cls(settings.AZURE_STORAGE_ACCOUNT, settings.AZURE_STORAGE_KEY, settings.INVOICE_CONTAINER)

     @property
     def service(self) -> BlobServiceClient:
          if self._service is None:
               if not self.account or not self.key:
                    raise RuntimeError("Missing AZURE_STORAGE_ACCOUNT or AZURE_STORAGE_KEY environment variable")
               self._service = BlobServiceClient.from_connection_string(
                    f"DefaultEndpointsProtocol=https;"
                    f"AccountName={self.account};"
                    f"AccountKey={self.key};"
                    f"EndpointSuffix=core.windows.net",
                    connection_timeout=timeout_for("default"),
                    read_timeout=timeout_for("upload"),
               )
          return self._service

     def _blob(self, key: str):
          return self.service.get_blob_client(container=self.container, blob=key)

     def build_invoice_key(self, owner_id: str, filename: str) -> str:
          return build_invoice_key(owner_id, filename)

     def upload(self, key: str, data: bytes, content_type: str) -> str:
          """Upload without overwriting; returns the key."""
          try:
               self._blob(key).upload_blob(
                    data,
                    overwrite=False,
                    content_settings=ContentSettings(content_type=content_type, cache_control="private, max-age=3600"),
                    timeout=timeout_for("upload"),
               )
          except AzureError as exc:
               raise _storage_error(exc, "upload", key) from exc
          logger.info("Uploaded invoice %s (%d bytes)", key, len(data))
          return key

     def download(self, key: str) -> bytes:
          try:
               return self._blob(key).download_blob(timeout=timeout_for("query")).readall()
          except AzureError as exc:
               raise _storage_error(exc, "download", key) from exc

     def delete(self, key: str) -> None:
          try:
               self._blob(key).delete_blob(timeout=timeout_for("delete"))
          except AzureError as exc:
               raise _storage_error(exc, "delete", key) from exc

     def signed_url(self, key: str, ttl_seconds: int = SIGNED_URL_TTL_SECONDS) -> str:
          """Read-only SAS URL for `key`, valid for `ttl_seconds`."""
          if not self.account or not self.key:
               raise RuntimeError("Missing AZURE_STORAGE_ACCOUNT or AZURE_STORAGE_KEY environment variable")
          sas = generate_blob_sas(
               account_name=self.account,
               container_name=self.container,
               blob_name=key,
               account_key=self.key,
               permission=BlobSasPermissions(read=True),
               expiry=datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds),
          )
          return f"https://{self.account}.blob.core.windows.net/{self.container}/{key}?{sas}"
