import json
import os
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from models import Location, ProspectInfo
from utils.helpers import _require_env, load_app_settings, render_template, title_case, to_absolute_url
from utils.serializers import ensure_jsonable, to_json


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://example.com/a", "https://example.com/a"),
        ("HTTP://example.com", "HTTP://example.com"),
        ("mailto:jane@example.com", "mailto:jane@example.com"),
        ("tel:+14165550100", "tel:+14165550100"),
        ("//cdn.example.com/x", "https://cdn.example.com/x"),
        ("/example.com/path", "https://example.com/path"),
        ("example.com", "https://example.com"),
        ("", ""),
        (None, ""),
    ],
)
def test_to_absolute_url(raw, expected):
    assert to_absolute_url(raw) == expected


def test_title_case():
    assert title_case("  george   BROWN college ") == "George Brown College"
    assert title_case(None) == ""


def test_app_settings_fall_back_to_defaults(tmp_path):
    settings = load_app_settings(str(tmp_path / "missing.json"))
    assert settings["max_retries"] == 5
    assert settings["blob_prefix"] == "background-check-reports/"


def test_app_settings_override(tmp_path):
    path = tmp_path / "app_settings.json"
    path.write_text(json.dumps({"max_retries": 3}), encoding="utf-8")
    settings = load_app_settings(str(path))
    assert settings["max_retries"] == 3
    assert settings["sas_expiry_hours"] == 24


def test_require_env():
    with patch.dict(os.environ, {"SOME_KEY": "value"}):
        assert _require_env("SOME_KEY") == "value"
    with patch.dict(os.environ, {}, clear=True):
        with pytest.raises(RuntimeError, match="SOME_KEY"):
            _require_env("SOME_KEY")


def test_text_template_is_not_escaped():
    text = render_template("report_email.txt.j2", {"email_type": "mixed", "user": {"first_name": "A&B", "last_name": "Co"},
                                                   "pdf_url": "https://x", "brand_name": "Tenant Screening"})
    assert "A&B Co" in text


def test_ensure_jsonable():
    when = datetime(2024, 6, 1, tzinfo=timezone.utc)
    payload = {
        "when": when,
        "prospect": ProspectInfo(first_name="Jane", last_name="Doe"),
        "location": Location(city="Toronto", **{"from": "2020-01"}),
        "raw": b"\x00\x01",
        "tags": ("a", "b"),
    }
    out = ensure_jsonable(payload)
    assert out["when"] == "2024-06-01T00:00:00+00:00"
    assert out["prospect"]["first_name"] == "Jane"
    assert "other_names" not in out["prospect"]
    assert out["location"] == {"city": "Toronto", "from": "2020-01"}
    assert out["raw"] == "AAE="
    assert out["tags"] == ["a", "b"]
    assert json.loads(to_json(payload))["prospect"]["last_name"] == "Doe"
