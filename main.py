from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from msreg.api_models import ResendVerificationPayload, User, UserPayload
from msreg.config import Config, load_config
from msreg.errors import RegistrationError, UpstreamServiceError
from msreg.logging import configure_logging, get_logger
from msreg.mail import SmtpMailer
from msreg.registration import KongGateway
from msreg.settings import settings
from msreg.users import UserRegistrar

app = FastAPI(title="User registration microservice", version="1.0")


@dataclass
class AppState:
    config: Config | None = None
    gateway: KongGateway | None = None
    registrar: UserRegistrar | None = None
    gateway_client: httpx.Client | None = None
    service_client: httpx.Client | None = None


state = AppState()


@app.on_event("startup")
def startup() -> None:
    configure_logging(json_output=settings.log_json, level=settings.log_level)
    log = get_logger("main")

    if state.config is None:
        state.config = load_config(settings.config_file)
    cfg = state.config

    if state.registrar is None:
        state.service_client = httpx.Client(timeout=settings.service_timeout_s)
        state.registrar = UserRegistrar(cfg, state.service_client, SmtpMailer(cfg.mail))

    if settings.skip_registration and state.gateway is None:
        log.warning("gateway_registration_skipped")
        return

    if state.gateway is None:
        state.gateway_client = httpx.Client(timeout=settings.gateway_timeout_s)
        admin_url = cfg.gateway_admin_url or settings.gateway_admin_url
        state.gateway = KongGateway(admin_url, state.gateway_client, cfg.microservice)

    # The service is unreachable without its route: a failure here aborts startup.
    state.gateway.self_register()


@app.on_event("shutdown")
def shutdown() -> None:
    log = get_logger("main")
    try:
        if state.gateway is not None:
            try:
                state.gateway.unregister()
            except RegistrationError as e:
                # Exit anyway; the gateway keeps a live target for this address.
                log.error("unregister_failed", error=f"{type(e).__name__}: {e}", state=state.gateway.state.value)
    finally:
        for client in (state.gateway_client, state.service_client):
            if client is not None:
                client.close()


@app.exception_handler(RequestValidationError)
def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": jsonable_encoder(exc.errors())})


def _raise_http(e: RegistrationError) -> None:
    if isinstance(e, UpstreamServiceError) and e.status == 400:
        raise HTTPException(status_code=400, detail=e.detail) from e
    raise HTTPException(status_code=500, detail=str(e)) from e


def _registrar() -> UserRegistrar:
    if state.registrar is None:
        raise HTTPException(status_code=503, detail="Service not started")
    return state.registrar


@app.get("/health")
def health() -> dict[str, str]:
    reg = state.gateway.state.value if state.gateway is not None else "disabled"
    return {"status": "healthy", "registration": reg}


@app.post("/users/register", status_code=status.HTTP_201_CREATED, response_model=User, response_model_by_alias=True)
def register_user(payload: UserPayload) -> User:
    try:
        return _registrar().register(payload)
    except RegistrationError as e:
        _raise_http(e)


@app.post("/users/register/resend-verification")
def resend_verification(payload: ResendVerificationPayload) -> dict[str, str]:
    try:
        _registrar().resend_verification(payload.email)
    except RegistrationError as e:
        _raise_http(e)
    return {"email": payload.email}
