from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Fields Kong accepts on write but never echoes back on the API object.
WRITE_ONLY_API_FIELDS = ("uris", "methods")


class KongEntity(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Upstream(KongEntity):
    """Kong 'upstream' object: a named, load-balanced pool of targets."""

    id: str = ""
    name: str = ""
    slots: int = 0
    orderlist: list[int] = Field(default_factory=list)
    created_at: float | None = None


class Target(KongEntity):
    """Kong 'target' object: one ip:port entry (with weight) under an upstream."""

    id: str = ""
    target: str = ""
    weight: int = 0
    upstream_id: str = ""
    created_at: float | None = None


class API(KongEntity):
    """Kong 'API' object: maps hosts/uris/methods onto an upstream URL.

    A fresh instance carries the proxy defaults used for every registered service.
    """

    id: str = ""
    name: str = ""
    created_at: float | None = None
    hosts: list[str] = Field(default_factory=list)
    uris: list[str] = Field(default_factory=list)
    methods: list[str] = Field(default_factory=list)
    upstream_url: str = ""

    http_if_terminated: bool = True
    https_only: bool = False
    preserve_host: bool = False
    strip_uri: bool = False
    retries: int = 5
    upstream_connect_timeout: int = 60000
    upstream_read_timeout: int = 60000
    upstream_send_timeout: int = 60000

    @classmethod
    def from_remote(cls, data: dict[str, Any]) -> "API":
        """Build an API from a Kong response body, ignoring write-only fields."""
        body = {k: v for k, v in data.items() if k not in WRITE_ONLY_API_FIELDS}
        return cls.model_validate(body)

    def add_host(self, host: str) -> None:
        self.hosts.append(host)

    def to_form(self) -> dict[str, str]:
        """Flat form encoding for create/update requests.

        Empty strings and lists are left out so Kong keeps its own default; the proxy
        behaviour fields are always sent.
        """
        form: dict[str, str] = {}
        if self.name:
            form["name"] = self.name
        for key in ("hosts", "uris", "methods"):
            values = getattr(self, key)
            if values:
                form[key] = ",".join(values)
        if self.upstream_url:
            form["upstream_url"] = self.upstream_url

        form["retries"] = str(self.retries)
        form["upstream_connect_timeout"] = str(self.upstream_connect_timeout)
        form["upstream_send_timeout"] = str(self.upstream_send_timeout)
        form["upstream_read_timeout"] = str(self.upstream_read_timeout)

        for key in ("strip_uri", "preserve_host", "https_only", "http_if_terminated"):
            form[key] = "true" if getattr(self, key) else "false"
        return form
