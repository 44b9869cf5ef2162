import azure.functions as func
import base64
import binascii
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

# Add the 'backend' directory to the path to allow for local imports
backend_path = Path(__file__).resolve().parent
sys.path.append(str(backend_path))

from main import run_background_check  # noqa: E402
from models import ProspectInfo, UserDetails  # noqa: E402
from services.mailer import send_report_email  # noqa: E402
from services.storage import upload_report_pdf  # noqa: E402
from utils.serializers import to_json  # noqa: E402

# Configure logging to use UTF-8
logging.basicConfig(
    level=logging.INFO,
    handlers=[logging.StreamHandler(sys.stdout)]
)
sys.stdout.reconfigure(encoding='utf-8')

# --- Function App Initialization ---
app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _json_response(payload: Any, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        to_json(payload),
        status_code=status_code,
        mimetype="application/json",
    )


def _read_json(req: func.HttpRequest) -> Optional[Dict[str, Any]]:
    try:
        body = req.get_json()
    except ValueError:
        return None
    return body if isinstance(body, dict) and body else None


def _snake_keys(body: Dict[str, Any]) -> Dict[str, Any]:
    """Accept the form's camelCase field names (firstName, postalCode, ...)."""
    return {_CAMEL_RE.sub("_", k).lower(): v for k, v in body.items()}


def _first(body: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if body.get(k):
            return body[k]
    return None


@app.route(route="background-check", methods=["POST"])
async def background_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Runs both providers and returns the fused report.
    400 for a missing/invalid body, 502 only when both providers crashed.
    """
    body = _read_json(req)
    if body is None:
        return _json_response({"error": "Bad Request. Missing body"}, 400)
    try:
        prospect = ProspectInfo.model_validate(_snake_keys(body))
    except ValidationError as e:
        return _json_response({"error": "Invalid prospect details", "details": e.errors(include_url=False)}, 400)

    try:
        report = await run_background_check(prospect)
    except Exception as e:
        logging.error(f"[background-check] unexpected error: {e}")
        return _json_response({"error": "An unexpected error occurred."}, 500)

    payload = {"report": report, "timestamp": datetime.now(timezone.utc)}
    if report.both_crashed:
        return _json_response({**payload, "error": "Both providers failed"}, 502)
    return _json_response(payload)


@app.route(route="store-pdf", methods=["POST"])
def store_pdf(req: func.HttpRequest) -> func.HttpResponse:
    body = _read_json(req)
    if body is None:
        return _json_response({"error": "Bad Request. Missing body"}, 400)
    encoded = _first(body, "PDFfile", "pdf_base64", "pdf")
    file_name = _first(body, "fileName", "file_name")
    if not encoded or not file_name:
        return _json_response({"error": "PDFfile and fileName are required"}, 400)
    try:
        pdf_bytes = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return _json_response({"error": "PDFfile is not valid base64"}, 400)

    try:
        location = upload_report_pdf(pdf_bytes, file_name)
    except Exception as e:
        logging.error(f"[store-pdf] upload error: {e}")
        return _json_response({"message": "An unexpected error occurred"}, 500)
    return _json_response({"location": location})


@app.route(route="send-email", methods=["POST"])
def send_email(req: func.HttpRequest) -> func.HttpResponse:
    body = _read_json(req)
    if body is None:
        return _json_response({"error": "Bad Request. Missing body"}, 400)
    user_raw = _first(body, "userDetails", "user_details") or {}
    recipients = _first(body, "recipientEmail", "recipients")
    pdf_url = _first(body, "pdfUrl", "pdf_url")
    if not recipients or not pdf_url:
        return _json_response({"error": "recipientEmail and pdfUrl are required"}, 400)
    try:
        user = UserDetails.model_validate(user_raw)
    except ValidationError:
        return _json_response({"error": "Invalid userDetails"}, 400)

    try:
        result = send_report_email(user, recipients, pdf_url)
    except Exception as e:
        logging.error(f"[send-email] sending error: {e}")
        return _json_response({"message": "An unexpected error occurred"}, 500)
    return _json_response(result)
