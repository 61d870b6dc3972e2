import json as _json
from unittest.mock import MagicMock

import pytest

from heroku_applink.org import Org

INSTANCE_URL = "https://example.my.salesforce.com"


def make_response(status_code=200, json=None, text=None, headers=None):
    """Build a MagicMock that looks enough like requests.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = headers or {}
    if json is not None:
        resp.json.return_value = json
        resp.text = _json.dumps(json)
        resp.content = resp.text.encode("utf-8")
    else:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
        resp.text = text or ""
        resp.content = resp.text.encode("utf-8")
    return resp


@pytest.fixture
def response():
    return make_response


@pytest.fixture
def applink_env():
    return {
        "HEROKU_APP_ID": "app-uuid-123",
        "HEROKU_APPLINK_API_URL": "https://applink.example.com/addons/abc",
        "HEROKU_APPLINK_TOKEN": "addon-token",
    }


@pytest.fixture
def org():
    return Org(
        access_token="00DFAKE-TOKEN",
        api_version="v62.0",
        namespace=None,
        org_id="00D000000000001",
        domain_url=INSTANCE_URL,
        user_id="005000000000001",
        username="user@example.com",
        org_type="SalesforceOrg",
    )
