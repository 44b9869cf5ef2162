import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jinja2 import Environment, FileSystemLoader, select_autoescape

CONFIG_DIR = Path(os.getenv("TENANTCHECK_CONFIG_DIR", Path(__file__).resolve().parent.parent / "config"))
APP_SETTINGS_PATH = os.getenv("TENANTCHECK_APP_SETTINGS", str(CONFIG_DIR / "app_settings.json"))

DEFAULT_APP_SETTINGS: Dict[str, Any] = {
    "provider_timeout_seconds": 15,
    "max_web_results": 5,
    "cache_scraper_results": False,
    "max_retries": 5,
    "sas_expiry_hours": 24,
    "blob_prefix": "background-check-reports/",
    "brand_name": "Tenant Screening",
    "reports_mailbox": "reports@example.com",
    "support_email": "support@example.com",
    "sender_address": "DoNotReply@example.com",
}


def _require_env(var: str) -> str:
    val = os.getenv(var)
    if not val:
        raise RuntimeError(f"Missing required environment variable: {var}")
    return val


def load_app_settings(path: Optional[str] = None) -> Dict[str, Any]:
    """Defaults overlaid with config/app_settings.json (if present)."""
    settings = dict(DEFAULT_APP_SETTINGS)
    path = path or APP_SETTINGS_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            settings.update(json.load(f))
    except FileNotFoundError:
        logging.warning(f"[settings] {path} not found, using defaults")
    return settings


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


_template_env: Optional[Environment] = None


def render_template(name: str, variables: dict) -> str:
    """Render a file from config/templates; HTML templates are autoescaped."""
    global _template_env
    if _template_env is None:
        _template_env = Environment(
            loader=FileSystemLoader(str(CONFIG_DIR / "templates")),
            autoescape=select_autoescape(["html", "html.j2"]),
            keep_trailing_newline=True,
        )
    return _template_env.get_template(name).render(**(variables or {}))


# --------- text utils ---------
def title_case(s: Optional[str]) -> str:
    if not s:
        return ""
    low = re.sub(r"\s+", " ", s.lower()).strip()
    return re.sub(r"\b([a-z])", lambda m: m.group(1).upper(), low)


def normalize_label(s: Optional[str]) -> str:
    """Lowercased, whitespace-collapsed, trimmed comparison key."""
    return re.sub(r"\s+", " ", (s or "").lower()).strip()


def to_absolute_url(raw: Optional[str]) -> str:
    if not raw:
        return ""
    s = raw.strip()
    if re.match(r"^(https?:|mailto:|tel:)", s, re.I):
        return s
    if s.startswith("//"):
        return "https:" + s
    return "https://" + s.lstrip("/")
