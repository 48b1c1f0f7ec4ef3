from __future__ import annotations

import argparse
import json
import sys

import httpx

from msreg.config import load_config
from msreg.errors import RegistrationError
from msreg.health import check_route
from msreg.logging import configure_logging
from msreg.netident import get_service_ip
from msreg.registration import KongGateway
from msreg.settings import settings


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _gateway(args: argparse.Namespace, client: httpx.Client) -> KongGateway:
    cfg = load_config(args.config)
    admin_url = args.admin_url or cfg.gateway_admin_url or settings.gateway_admin_url
    return KongGateway(admin_url, client, cfg.microservice)


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Microservice gateway registration CLI")
    p.add_argument("--config", default=settings.config_file, help="Service config JSON file")
    p.add_argument("--admin-url", default=None, help="Kong admin URL (overrides config and API_GATEWAY_URL)")
    p.add_argument("--timeout", type=float, default=float(settings.gateway_timeout_s))
    p.add_argument("--verbose", "-v", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("register", help="Ensure upstream and API, then add this instance as a target")
    sub.add_parser("unregister", help="Withdraw this instance (weight 0 target)")
    sub.add_parser("ip", help="Print the IP this instance registers with")

    s_chk = sub.add_parser("check", help="Call a public path through the gateway proxy")
    s_chk.add_argument("--proxy-url", default=None, help="Gateway proxy URL (default: gatewayUrl from config)")
    s_chk.add_argument("--path", default=None, help="Path to request (default: first configured path)")
    s_chk.add_argument("--host", default=None, help="Host header (default: first configured host)")

    args = p.parse_args(argv)
    configure_logging(json_output=settings.log_json, level="DEBUG" if args.verbose else settings.log_level)

    try:
        if args.cmd == "ip":
            print(get_service_ip())
            return 0

        if args.cmd in {"register", "unregister"}:
            with httpx.Client(timeout=args.timeout) as client:
                gw = _gateway(args, client)
                target = gw.self_register() if args.cmd == "register" else gw.unregister()
            _print({"state": gw.state.value, "target": target.model_dump()})
            return 0

        if args.cmd == "check":
            cfg = load_config(args.config)
            svc = cfg.microservice
            proxy = args.proxy_url or cfg.gateway_url
            path = args.path or (svc.paths[0] if svc.paths else "/")
            host = args.host or (svc.hosts[0] if svc.hosts else None)
            ok, msg, latency = check_route(f"{proxy.rstrip('/')}{path}", host=host, timeout_s=args.timeout)
            _print({"ok": ok, "message": msg, "latency_ms": latency})
            return 0 if ok else 1
    except RegistrationError as e:
        _print({"error": type(e).__name__, "message": str(e)})
        return 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
