import itertools
import json
import os
import sys
from urllib.parse import parse_qsl, unquote

import httpx
import pytest

# Ensure project root is importable (so `import main` / `import cli` work reliably across environments)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from msreg.config import MicroserviceConfig  # noqa: E402
from msreg.registration import KongGateway  # noqa: E402

ADMIN_URL = "http://kong:8001"
SERVICE_IP = "10.0.0.5"


class FakeKong:
    """In-memory Kong admin API (0.10/0.11 style) served through httpx.MockTransport.

    Every request is recorded as (method, path, form). ``fail`` maps
    (method, path) to a status code returned instead of the normal answer.
    """

    def __init__(self) -> None:
        self.upstreams: dict[str, dict] = {}
        self.apis: dict[str, dict] = {}
        self.targets: list[dict] = []
        self.calls: list[tuple[str, str, dict]] = []
        self.fail: dict[tuple[str, str], int] = {}
        self._ids = itertools.count(1)

    # -- helpers for tests -------------------------------------------------
    def add_upstream(self, name: str, slots: int) -> dict:
        up = {"id": f"up-{next(self._ids)}", "name": name, "slots": slots, "orderlist": [1, 2], "created_at": 1}
        self.upstreams[name] = up
        return up

    def add_api(self, name: str, **fields) -> dict:
        api = {"id": f"api-{next(self._ids)}", "name": name, "created_at": 1, **fields}
        self.apis[name] = api
        return api

    def paths(self) -> list[tuple[str, str]]:
        return [(m, p) for m, p, _ in self.calls]

    # -- transport ----------------------------------------------------------
    def handler(self, request: httpx.Request) -> httpx.Response:
        path = unquote(request.url.path)
        body = request.content.decode() if request.content else ""
        form = dict(parse_qsl(body, keep_blank_values=True))
        self.calls.append((request.method, path, form))

        if (request.method, path) in self.fail:
            status = self.fail[(request.method, path)]
            return httpx.Response(status, json={"message": "forced failure"})

        parts = [p for p in path.split("/") if p]
        if parts[0] == "upstreams":
            return self._upstreams(request.method, parts, form)
        if parts[0] == "apis":
            return self._apis(request.method, parts, form)
        return httpx.Response(404, json={"message": "Not found"})

    def _upstreams(self, method: str, parts: list[str], form: dict) -> httpx.Response:
        if method == "GET" and len(parts) == 2:
            up = self.upstreams.get(parts[1])
            return httpx.Response(200, json=up) if up else httpx.Response(404, json={"message": "Not found"})
        if method == "POST" and len(parts) == 1:
            if form["name"] in self.upstreams:
                return httpx.Response(409, json={"name": "already exists with value '%s'" % form["name"]})
            return httpx.Response(201, json=self.add_upstream(form["name"], int(form["slots"])))
        if method == "POST" and len(parts) == 3 and parts[2] == "targets":
            up = self.upstreams.get(parts[1])
            if up is None:
                return httpx.Response(404, json={"message": "Not found"})
            target = {
                "id": f"tg-{next(self._ids)}",
                "target": form["target"],
                "weight": int(form["weight"]),
                "upstream_id": up["id"],
                "created_at": 1485524914883.757,
            }
            self.targets.append(target)
            return httpx.Response(201, json=target)
        return httpx.Response(405, json={"message": "Method not allowed"})

    def _api_body(self, form: dict) -> dict:
        body = {}
        for key, value in form.items():
            if key in {"hosts", "uris", "methods"}:
                body[key] = value.split(",")
            elif key in {"strip_uri", "preserve_host", "https_only", "http_if_terminated"}:
                body[key] = value == "true"
            elif key == "name" or key == "upstream_url":
                body[key] = value
            else:
                body[key] = int(value)
        # Kong does not echo what was written for these two; return something else.
        body["uris"] = ["/not-what-was-sent"]
        body.pop("methods", None)
        return body

    def _apis(self, method: str, parts: list[str], form: dict) -> httpx.Response:
        if method == "GET" and len(parts) == 2:
            api = self.apis.get(parts[1]) or next((a for a in self.apis.values() if a["id"] == parts[1]), None)
            return httpx.Response(200, json=api) if api else httpx.Response(404, json={"message": "Not found"})
        if method == "POST" and len(parts) == 1:
            body = self._api_body(form)
            body.pop("name", None)
            api = self.add_api(form["name"], **body)
            return httpx.Response(201, json=api)
        if method == "PATCH" and len(parts) == 2:
            api = next((a for a in self.apis.values() if a["id"] == parts[1]), None)
            if api is None:
                return httpx.Response(404, json={"message": "Not found"})
            api.update(self._api_body(form))
            return httpx.Response(200, json=api)
        return httpx.Response(405, json={"message": "Method not allowed"})


@pytest.fixture
def fake_kong():
    return FakeKong()


@pytest.fixture
def kong_client(fake_kong):
    with httpx.Client(transport=httpx.MockTransport(fake_kong.handler)) as client:
        yield client


@pytest.fixture
def ms_config():
    return MicroserviceConfig(
        name="user-microservice",
        port=8080,
        virtual_host="user.api.example.org",
        paths=["/users"],
        hosts=["localhost", "user.api.example.org"],
        weight=10,
        slots=10,
    )


@pytest.fixture
def gateway(kong_client, ms_config):
    return KongGateway(ADMIN_URL, kong_client, ms_config, ip_resolver=lambda: SERVICE_IP)


@pytest.fixture
def config_dict():
    return {
        "microservice": {
            "name": "registration-microservice",
            "port": 8080,
            "paths": ["/users/register"],
            "virtual_host": "registration.services.jormugandr.org",
            "hosts": ["localhost", "registration.services.jormugandr.org"],
            "weight": 10,
            "slots": 100,
        },
        "gatewayUrl": "http://kong:8000",
        "gatewayAdminUrl": "http://kong:8001",
        "systemKey": "/run/secrets/system",
        "verificationURL": "http://localhost:8080/users/verify",
        "services": {
            "user-microservice": "http://kong:8000/users",
            "microservice-user-profile": "http://kong:8000/profiles",
        },
        "mail": {"host": "smtp.example.com", "port": "587", "user": "user_email", "password": "password"},
        "rabbitmq": {"username": "guest", "password": "guest", "host": "rabbitmq", "port": "5672"},
    }


@pytest.fixture
def config_file(tmp_path, config_dict):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_dict))
    return str(path)
