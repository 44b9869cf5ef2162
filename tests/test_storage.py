import os
from unittest.mock import MagicMock, patch

import pytest

from services.storage import blob_name_for, get_blob_service_client, upload_report_pdf

BLOB_URL = "https://acct.blob.core.windows.net/reports/background-check-reports/report.pdf"
SETTINGS = {"blob_prefix": "background-check-reports/", "sas_expiry_hours": 24}


def _client():
    client = MagicMock()
    client.account_name = "acct"
    client.credential.account_key = "secret"
    client.get_blob_client.return_value.url = BLOB_URL
    return client


@patch('services.storage.generate_blob_sas', return_value="sv=2024&sig=abc")
def test_upload_returns_sas_url(mock_sas):
    client = _client()

    url = upload_report_pdf(b"%PDF", "report.pdf", blob_service_client=client,
                            container_name="reports", app_settings=SETTINGS)

    assert url == f"{BLOB_URL}?sv=2024&sig=abc"
    client.get_blob_client.assert_called_once_with(container="reports", blob="background-check-reports/report.pdf")
    _, upload_kwargs = client.get_blob_client.return_value.upload_blob.call_args
    assert upload_kwargs["content_settings"].content_type == "application/pdf"
    assert upload_kwargs["overwrite"] is True

    _, sas_kwargs = mock_sas.call_args
    assert sas_kwargs["blob_name"] == "background-check-reports/report.pdf"
    assert sas_kwargs["account_key"] == "secret"
    assert sas_kwargs["permission"].read
    assert not sas_kwargs["permission"].write


def test_upload_errors_propagate():
    client = _client()
    client.get_blob_client.return_value.upload_blob.side_effect = RuntimeError("403")
    with pytest.raises(RuntimeError):
        upload_report_pdf(b"%PDF", "report.pdf", blob_service_client=client, app_settings=SETTINGS)


def test_blob_name_for():
    assert blob_name_for("a.pdf", "background-check-reports/") == "background-check-reports/a.pdf"
    assert blob_name_for("a.pdf", "") == "a.pdf"


def test_missing_connection_string():
    with patch.dict(os.environ, {}, clear=True):
        with pytest.raises(RuntimeError, match="AZURE_STORAGE_CONNECTION_STRING"):
            get_blob_service_client()
