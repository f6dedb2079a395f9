"""Login history helpers — user agent parsing, client IPs, geo lookup."""

import httpx
import pytest
from starlette.requests import Request

from alera.services import login_history
from alera.services.login_history import (
    LOCAL_LOCATION,
    UNKNOWN_LOCATION,
    client_ip,
    is_local_address,
    lookup_location,
    parse_user_agent,
)

CHROME = "Mozilla/5.0 (Macintosh) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"
EDGE = CHROME + " Edg/120.0"
IPHONE = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0) Version/17.0 Mobile Safari/604.1"
IPAD = "Mozilla/5.0 (iPad; CPU OS 17_0) Version/17.0 Safari/604.1"


@pytest.mark.parametrize(
    "ua,expected",
    [
        (CHROME, ("Desktop", "Chrome")),
        (EDGE, ("Desktop", "Edge")),
        (IPHONE, ("Mobile", "Safari")),
        (IPAD, ("Tablet", "Safari")),
        ("Mozilla/5.0 (X11; Linux) Gecko/20100101 Firefox/121.0", ("Desktop", "Firefox")),
        ("", ("Desktop", "Unknown")),
    ],
)
def test_parse_user_agent(ua, expected):
    assert parse_user_agent(ua) == expected


def _request(headers: dict, client=("10.0.0.9", 5000)) -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/api/auth/login",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": client,
        }
    )


def test_client_ip_prefers_forwarded_for():
    req = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "X-Real-IP": "198.51.100.2"})
    assert client_ip(req) == "203.0.113.7"
    assert client_ip(_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"
    assert client_ip(_request({})) == "10.0.0.9"


@pytest.mark.parametrize(
    "ip,local",
    [
        ("127.0.0.1", True),
        ("::1", True),
        ("192.168.1.20", True),
        ("testclient", True),
        ("8.8.8.8", False),
    ],
)
def test_is_local_address(ip, local):
    assert is_local_address(ip) is local


@pytest.mark.asyncio
async def test_lookup_location_skips_local_and_disabled(monkeypatch):
    assert await lookup_location("192.168.0.1") == LOCAL_LOCATION
    monkeypatch.setattr(login_history.settings, "geoip_lookup_enabled", False)
    assert await lookup_location("8.8.8.8") == UNKNOWN_LOCATION


@pytest.mark.asyncio
async def test_lookup_location_formats_and_survives_failures(monkeypatch):
    monkeypatch.setattr(login_history.settings, "geoip_lookup_enabled", True)
    responses = {
        "8.8.8.8": httpx.Response(
            200,
            json={"status": "success", "city": "Mountain View",
                  "regionName": "California", "country": "United States"},
        ),
        "1.1.1.1": httpx.Response(200, json={"status": "fail"}),
    }

    def handler(request: httpx.Request) -> httpx.Response:
        ip = request.url.path.rsplit("/", 1)[-1]
        if ip not in responses:
            raise httpx.ConnectTimeout("timed out", request=request)
        return responses[ip]

    real_client = httpx.AsyncClient

    def mock_client(*args, **kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(login_history.httpx, "AsyncClient", mock_client)

    assert await lookup_location("8.8.8.8") == "Mountain View, California, United States"
    assert await lookup_location("1.1.1.1") == UNKNOWN_LOCATION
    assert await lookup_location("9.9.9.9") == UNKNOWN_LOCATION
