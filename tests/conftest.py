import pytest
import requests
from unittest.mock import MagicMock


def make_response(status_code=200, body=b"", url="https://site.test/"):
    """A real requests.Response with its body already loaded."""
    resp = requests.Response()
    resp.status_code = status_code
    resp._content = body
    resp._content_consumed = True
    resp.url = url
    resp.close = MagicMock()
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


SCENARIO_HTML = (
    b'<!DOCTYPE html><html><head><title>T</title></head><body>'
    b'<h1>A</h1><h2>B</h2><a href="/x">in</a><a href="https://other.com">out</a>'
    b'<input type="password"></body></html>'
)
