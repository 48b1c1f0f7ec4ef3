import httpx

from msreg.health import check_route


def test_routed_request_sends_host_header():
    seen = {}

    def handler(request):
        seen["host"] = request.headers["host"]
        return httpx.Response(200, json={"ok": True})

    ok, msg, latency = check_route("http://kong:8000/users", host="user.api.example.org", transport=httpx.MockTransport(handler))
    assert ok is True
    assert msg == "Routed"
    assert latency is not None
    assert seen["host"] == "user.api.example.org"


def test_unmatched_route():
    def handler(request):
        return httpx.Response(404, json={"message": "no API found with those values"})

    ok, msg, _ = check_route("http://kong:8000/users", transport=httpx.MockTransport(handler))
    assert ok is False
    assert msg == "HTTP 404"


def test_no_response():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    ok, msg, _ = check_route("http://kong:8000/users", transport=httpx.MockTransport(handler))
    assert ok is False
    assert msg == "No response"
