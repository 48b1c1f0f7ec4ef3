from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError


class MicroserviceConfig(BaseModel):
    """How this microservice presents itself to the gateway.

    Every instance sharing a ``virtual_host`` joins the same upstream; ``slots`` sizes
    that upstream's balancer ring the first time it is created.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field("", description="API name on the gateway (not a hostname)")
    port: int = Field(0, ge=0, le=65535, description="Local port the service listens on")
    virtual_host: str = Field("", description="Upstream name shared by all instances")
    paths: list[str] = Field(default_factory=list, description="Public URIs routed to the upstream")
    hosts: list[str] = Field(default_factory=list, description="Accepted Host header values")
    weight: int = Field(0, ge=0, description="Load balancing weight of this instance")
    max_slots: int = Field(0, ge=0, alias="slots", description="Balancer ring size for the upstream")


class DBConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    host: str = ""
    user: str = ""
    password: str = Field("", alias="pass")
    database: str = ""


class Config(BaseModel):
    """Full service configuration as stored in the JSON config file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    microservice: MicroserviceConfig = Field(default_factory=MicroserviceConfig)
    database: DBConfig | None = None
    gateway_url: str = Field("", alias="gatewayUrl")
    gateway_admin_url: str = Field("", alias="gatewayAdminUrl")
    system_key: str = Field("", alias="systemKey")
    verification_url: str = Field("", alias="verificationURL")
    services: dict[str, str] = Field(default_factory=dict)
    mail: dict[str, str] = Field(default_factory=dict)

    def service_url(self, name: str) -> str:
        try:
            return self.services[name].rstrip("/")
        except KeyError:
            raise ConfigError(f"No URL configured for service '{name}'.") from None


def _read_json(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object.")
    return data


def load_config(path: str) -> Config:
    """Load the full service configuration from a JSON file."""
    try:
        return Config.model_validate(_read_json(path))
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def load_microservice_config(path: str) -> MicroserviceConfig:
    """Load a bare microservice block (name, port, virtual_host, ...) from a JSON file."""
    try:
        return MicroserviceConfig.model_validate(_read_json(path))
    except ValidationError as e:
        raise ConfigError(f"Invalid microservice config {path}: {e}") from e
