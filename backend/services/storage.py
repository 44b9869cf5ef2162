# backend/services/storage.py
import datetime
import logging
import os
from typing import Optional

from azure.storage.blob import BlobSasPermissions, BlobServiceClient, ContentSettings, generate_blob_sas

from utils.helpers import _require_env, load_app_settings

AZURE_STORAGE_CONTAINER_NAME = os.getenv("AZURE_STORAGE_CONTAINER_NAME", "background-check-reports")


def get_blob_service_client() -> BlobServiceClient:
    return BlobServiceClient.from_connection_string(_require_env("AZURE_STORAGE_CONNECTION_STRING"))


def blob_name_for(file_name: str, prefix: Optional[str] = None) -> str:
    if prefix is None:
        prefix = load_app_settings()["blob_prefix"]
    return f"{prefix.rstrip('/')}/{file_name}" if prefix else file_name


def upload_report_pdf(
    pdf_bytes: bytes,
    file_name: str,
    *,
    blob_service_client: Optional[BlobServiceClient] = None,
    container_name: Optional[str] = None,
    app_settings: Optional[dict] = None,
) -> str:
    """
    Upload the PDF and return a read-only SAS URL.
    Errors from the storage SDK propagate to the caller.
    """
    app_settings = app_settings or load_app_settings()
    client = blob_service_client or get_blob_service_client()
    container = container_name or AZURE_STORAGE_CONTAINER_NAME
    blob_name = blob_name_for(file_name, app_settings.get("blob_prefix", ""))

    blob_client = client.get_blob_client(container=container, blob=blob_name)
    blob_client.upload_blob(
        pdf_bytes,
        overwrite=True,
        content_settings=ContentSettings(content_type="application/pdf"),
        timeout=300,
    )

    hours = int(app_settings.get("sas_expiry_hours", 24))
    sas_token = generate_blob_sas(
        account_name=client.account_name,
        container_name=container,
        blob_name=blob_name,
        account_key=client.credential.account_key,
        permission=BlobSasPermissions(read=True),
        expiry=datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(hours=hours),
    )
    logging.info(f"[storage] uploaded {blob_name} ({len(pdf_bytes)} bytes)")
    return f"{blob_client.url}?{sas_token}"
