"""Clients for the Kong admin API resources used during self-registration.

Each client does one thing against one resource type; none of them retries.
Requests are form encoded, responses are JSON.
"""
from __future__ import annotations

from typing import Any, Callable, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .errors import CreateConflict, DecodeError, InvalidArgument, RemoteRejected, TransportError
from .logging import get_logger
from .models import API, Target, Upstream

T = TypeVar("T")

Timeout = float | httpx.Timeout | None


class KongAdmin:
    """Thin wrapper over an injected httpx.Client pointed at Kong's admin URL."""

    def __init__(self, admin_url: str, client: httpx.Client) -> None:
        self.admin_url = admin_url.rstrip("/")
        self.client = client
        self.log = get_logger("kong")

    def url(self, path: str) -> str:
        return f"{self.admin_url}/{path}"

    def request(
        self,
        method: str,
        path: str,
        form: dict[str, str] | None = None,
        timeout: Timeout = None,
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {}
        if form is not None:
            kwargs["data"] = form
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            resp = self.client.request(method, self.url(path), **kwargs)
        except httpx.TransportError as e:
            raise TransportError(f"{method} {self.url(path)}: {type(e).__name__}: {e}") from e
        self.log.debug("kong_request", method=method, path=path, status=resp.status_code)
        return resp

    def lookup(self, path: str, timeout: Timeout = None) -> httpx.Response | None:
        """GET an entity; None when Kong answers 404."""
        resp = self.request("GET", path, timeout=timeout)
        if resp.status_code == 404:
            return None
        if not resp.is_success:
            raise RemoteRejected(resp.status_code, resp.reason_phrase)
        return resp

    @staticmethod
    def expect(resp: httpx.Response, status: int, error: type[RemoteRejected] = RemoteRejected) -> None:
        if resp.status_code != status:
            raise error(resp.status_code, resp.reason_phrase)

    @staticmethod
    def decode(resp: httpx.Response, parse: Callable[[dict[str, Any]], T]) -> T:
        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {resp.request.url}: {e}") from e
        if not isinstance(data, dict):
            raise DecodeError(f"Expected a JSON object from {resp.request.url}, got {type(data).__name__}")
        try:
            return parse(data)
        except ValidationError as e:
            raise DecodeError(f"Unexpected entity from {resp.request.url}: {e}") from e


def _segment(value: str) -> str:
    return quote(value, safe="")


class UpstreamClient:
    def __init__(self, admin: KongAdmin) -> None:
        self.admin = admin

    def fetch(self, name: str, timeout: Timeout = None) -> Upstream | None:
        if not name:
            raise InvalidArgument("upstream name is empty")
        resp = self.admin.lookup(f"upstreams/{_segment(name)}", timeout=timeout)
        if resp is None:
            return None
        return self.admin.decode(resp, Upstream.model_validate)

    def create(self, name: str, slots: int, timeout: Timeout = None) -> Upstream:
        resp = self.admin.request("POST", "upstreams/", form={"name": name, "slots": str(slots)}, timeout=timeout)
        self.admin.expect(resp, 201, CreateConflict)
        return self.admin.decode(resp, Upstream.model_validate)

    def ensure_exists(self, name: str, slots: int, timeout: Timeout = None) -> Upstream:
        """Create the upstream unless one with this name exists.

        An existing upstream is returned as-is: its slots are never compared with
        ``slots`` nor updated.
        """
        existing = self.fetch(name, timeout=timeout)
        if existing is not None:
            self.admin.log.debug("upstream_exists", upstream=name, slots=existing.slots)
            return existing
        created = self.create(name, slots, timeout=timeout)
        self.admin.log.info("upstream_created", upstream=name, slots=slots, id=created.id)
        return created


class ApiClient:
    def __init__(self, admin: KongAdmin) -> None:
        self.admin = admin

    def fetch(self, name: str, timeout: Timeout = None) -> API | None:
        if not name:
            raise InvalidArgument("name is empty")
        resp = self.admin.lookup(f"apis/{_segment(name)}", timeout=timeout)
        if resp is None:
            return None
        return self.admin.decode(resp, API.from_remote)

    def upsert(self, desired: API, timeout: Timeout = None) -> API:
        """Create the API (no id) or overwrite every sent field of an existing one (id set)."""
        form = desired.to_form()
        if not desired.id:
            resp = self.admin.request("POST", "apis/", form=form, timeout=timeout)
            self.admin.expect(resp, 201)
        else:
            resp = self.admin.request("PATCH", f"apis/{_segment(desired.id)}", form=form, timeout=timeout)
            self.admin.expect(resp, 200)

        result = self.admin.decode(resp, API.from_remote)
        # uris/methods are not round-tripped by Kong; report what we sent.
        result.uris = list(desired.uris)
        result.methods = list(desired.methods)
        return result

    def create_or_update(self, desired: API, timeout: Timeout = None) -> API:
        found = self.fetch(desired.name, timeout=timeout)
        if found is not None:
            desired.id = found.id
        api = self.upsert(desired, timeout=timeout)
        self.admin.log.info("api_upserted", api=api.name, id=api.id, updated=found is not None)
        return api


class TargetClient:
    def __init__(self, admin: KongAdmin) -> None:
        self.admin = admin

    def add_target(self, upstream_name: str, address: str, weight: int, timeout: Timeout = None) -> Target:
        """Append a target entry under the upstream.

        Kong keeps every entry; the newest one for an address decides its weight,
        so calling this twice records two entries.
        """
        resp = self.admin.request(
            "POST",
            f"upstreams/{_segment(upstream_name)}/targets",
            form={"target": address, "weight": str(weight)},
            timeout=timeout,
        )
        self.admin.expect(resp, 201)
        target = self.admin.decode(resp, Target.model_validate)
        self.admin.log.info("target_added", upstream=upstream_name, target=address, weight=weight)
        return target
