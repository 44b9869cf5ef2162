import asyncio
import os
import unittest
from unittest.mock import MagicMock, patch

import requests

from models import ProspectInfo, ProviderResult
from services.identity_lookup import (
    build_identify_params,
    fetch_identity_profile,
    identify_person,
    select_best_match,
)

PROSPECT = ProspectInfo(first_name="Jane", last_name="Doe", city="Toronto", state="ON", dob="1990-04-12")


def _response(status_code=200, body=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    if json_error:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    return resp


@patch.dict(os.environ, {"PDL_API_KEY": "test-key"})
class TestIdentifyPerson(unittest.TestCase):

    @patch('services.identity_lookup.requests.get')
    def test_missing_form_field_skips_network(self, mock_get):
        result = identify_person(PROSPECT.model_copy(update={"dob": ""}), timeout=1)
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "Missing a form field")
        mock_get.assert_not_called()

    @patch('services.identity_lookup.requests.get')
    def test_best_match_is_returned_with_filtered_experience(self, mock_get):
        mock_get.return_value = _response(body={
            "status": 200,
            "matches": [
                {"match_score": 80, "data": {"full_name": "someone else"}},
                {"match_score": 95, "data": {
                    "full_name": "jane doe",
                    "experience": [
                        {"company": {"name": "xxx"}, "title": {"name": "engineer"}},
                        {"company": {"name": "Northwind Freight"}, "title": {"name": "dispatcher"}},
                    ],
                }},
            ],
        })

        result = identify_person(PROSPECT, timeout=1)

        self.assertTrue(result.ok)
        self.assertEqual(result.data.full_name, "jane doe")
        self.assertEqual(result.data.match_score, 95.0)
        self.assertEqual([e.company.name for e in result.data.experience], ["Northwind Freight"])
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs["headers"], {"X-Api-Key": "test-key"})
        self.assertEqual(kwargs["params"]["locality"], "Toronto")
        self.assertTrue(mock_get.call_args[0][0].endswith("/v5/person/identify"))

    @patch('services.identity_lookup.requests.get')
    def test_http_error_uses_provider_message(self, mock_get):
        mock_get.return_value = _response(401, {"error": {"message": "Invalid API key"}})
        result = identify_person(PROSPECT, timeout=1)
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "Invalid API key")

    @patch('services.identity_lookup.requests.get')
    def test_http_error_without_body(self, mock_get):
        mock_get.return_value = _response(500, json_error=True)
        result = identify_person(PROSPECT, timeout=1)
        self.assertEqual(result.error, "PDL error 500")

    @patch('services.identity_lookup.requests.get')
    def test_no_match(self, mock_get):
        mock_get.return_value = _response(body={"status": 404, "matches": []})
        result = identify_person(PROSPECT, timeout=1)
        self.assertFalse(result.ok)
        self.assertEqual(result.error, "No match found")

    @patch('services.identity_lookup.requests.get')
    def test_network_error_never_raises(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout("timed out")
        result = identify_person(PROSPECT, timeout=1)
        self.assertFalse(result.ok)
        self.assertIn("timed out", result.error)


def test_missing_api_key_is_reported_not_raised():
    with patch.dict(os.environ, {}, clear=True), patch('services.identity_lookup.requests.get') as mock_get:
        result = identify_person(PROSPECT, timeout=1)
    assert not result.ok
    assert result.error == "An unexpected error occurred."
    mock_get.assert_not_called()


def test_build_identify_params_skips_blanks():
    params = build_identify_params(PROSPECT)
    assert params == {
        "first_name": "Jane",
        "last_name": "Doe",
        "locality": "Toronto",
        "region": "ON",
        "birth_date": "1990-04-12",
    }


def test_select_best_match():
    assert select_best_match([]) is None
    assert select_best_match([{"match_score": 2}, "junk", {"match_score": 9}]) == {"match_score": 9}


def test_fetch_identity_profile_runs_blocking_call():
    expected = ProviderResult(ok=False, error="No match found")
    with patch('services.identity_lookup.identify_person', return_value=expected) as mock_identify:
        result = asyncio.run(fetch_identity_profile(PROSPECT))
    assert result is expected
    mock_identify.assert_called_once_with(PROSPECT)
