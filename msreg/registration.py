from __future__ import annotations

from enum import Enum
from typing import Callable, Protocol

import httpx

from .config import MicroserviceConfig, load_microservice_config
from .kong import ApiClient, KongAdmin, TargetClient, Timeout, UpstreamClient
from .logging import get_logger
from .models import API, Target
from .netident import get_service_ip, target_address


class Registration(Protocol):
    """Registers and unregisters a microservice on an API gateway."""

    def self_register(self) -> object: ...

    def unregister(self) -> object: ...


class RegistrationState(str, Enum):
    UNREGISTERED = "unregistered"
    REGISTERING = "registering"
    REGISTERED = "registered"
    DEREGISTERING = "deregistering"
    WITHDRAWN = "withdrawn"


class KongGateway:
    """Self-registration of one microservice instance on a Kong gateway.

    Registering ensures, in this order:
      1) an upstream named after the virtual host
      2) an API routing the configured hosts/paths to that upstream
      3) a target for this instance's ip:port with the configured weight

    Nothing is rolled back when a later step fails; calling ``self_register`` again
    skips the upstream and updates the API in place.
    Unregistering appends a weight 0 target instead of deleting anything.
    """

    def __init__(
        self,
        admin_url: str,
        client: httpx.Client,
        config: MicroserviceConfig,
        ip_resolver: Callable[[], str] = get_service_ip,
    ) -> None:
        self.gateway_url = admin_url
        self.config = config
        self.ip_resolver = ip_resolver
        admin = KongAdmin(admin_url, client)
        self.upstreams = UpstreamClient(admin)
        self.apis = ApiClient(admin)
        self.targets = TargetClient(admin)
        self.state = RegistrationState.UNREGISTERED
        self.log = get_logger("registration").bind(service=config.name, virtual_host=config.virtual_host)

    @classmethod
    def from_config_file(cls, admin_url: str, client: httpx.Client, config_file: str) -> "KongGateway":
        """Build a gateway registration from a JSON file holding the microservice block.

        {"name": ..., "port": 8080, "virtual_host": ..., "paths": [...],
         "hosts": [...], "weight": 10, "slots": 100}
        """
        return cls(admin_url, client, load_microservice_config(config_file))

    def desired_api(self) -> API:
        cfg = self.config
        return API(
            name=cfg.name,
            hosts=list(cfg.hosts),
            uris=list(cfg.paths),
            upstream_url=f"http://{cfg.virtual_host}:{cfg.port}",
        )

    def self_address(self) -> str:
        return target_address(self.ip_resolver(), self.config.port)

    def self_register(self, timeout: Timeout = None) -> Target:
        cfg = self.config
        self.state = RegistrationState.REGISTERING
        self.log.info("self_register_started")
        try:
            self.upstreams.ensure_exists(cfg.virtual_host, cfg.max_slots, timeout=timeout)
            self.apis.create_or_update(self.desired_api(), timeout=timeout)
            target = self.targets.add_target(cfg.virtual_host, self.self_address(), cfg.weight, timeout=timeout)
        except Exception as e:
            self.state = RegistrationState.UNREGISTERED
            self.log.error("self_register_failed", error=f"{type(e).__name__}: {e}")
            raise
        self.state = RegistrationState.REGISTERED
        self.log.info("self_register_done", target=target.target, weight=cfg.weight)
        return target

    def unregister(self, timeout: Timeout = None) -> Target:
        previous = self.state
        self.state = RegistrationState.DEREGISTERING
        try:
            target = self.targets.add_target(self.config.virtual_host, self.self_address(), 0, timeout=timeout)
        except Exception:
            # The instance may still be receiving traffic.
            self.state = previous
            raise
        self.state = RegistrationState.WITHDRAWN
        self.log.info("unregister_done", target=target.target)
        return target
