"""User account creation across the user and user-profile services.

Both downstream calls carry a self-signed system JWT. There is no rollback: if the
profile update fails, the user created in step one stays.
"""
from __future__ import annotations

from typing import Any, Callable

import httpx
from pydantic import ValidationError

from .api_models import User, UserPayload, UserProfile, VerificationReset
from .config import Config
from .errors import DecodeError, TransportError, UpstreamServiceError
from .logging import get_logger
from .mail import VERIFICATION_SUBJECT, Mailer, render_verification_email
from .security import generate_token, self_sign_jwt
from .settings import settings

USER_SERVICE = "user-microservice"
PROFILE_SERVICE = "microservice-user-profile"


def _error_detail(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class UserRegistrar:
    def __init__(
        self,
        config: Config,
        client: httpx.Client,
        mailer: Mailer,
        token_signer: Callable[[], str] | None = None,
        template_path: str = settings.email_template,
    ) -> None:
        self.config = config
        self.client = client
        self.mailer = mailer
        self.token_signer = token_signer or (lambda: self_sign_jwt(config.system_key))
        self.template_path = template_path
        self.log = get_logger("users")

    def _call(self, method: str, url: str, payload: dict[str, Any] | None = None) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.token_signer()}"}
        try:
            resp = self.client.request(method, url, json=payload, headers=headers)
        except httpx.TransportError as e:
            raise TransportError(f"{method} {url}: {type(e).__name__}: {e}") from e
        self.log.debug("service_request", method=method, url=url, status=resp.status_code)
        return resp

    @staticmethod
    def _expect(resp: httpx.Response, *statuses: int) -> None:
        if resp.status_code not in statuses:
            raise UpstreamServiceError(resp.status_code, _error_detail(resp))

    @staticmethod
    def _decode(resp: httpx.Response, model: type[Any]) -> Any:
        try:
            return model.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise DecodeError(f"Unexpected response from {resp.request.url}: {e}") from e

    def _send_verification(self, email: str, name: str, token: str) -> None:
        html = render_verification_email(self.template_path, name, self.config.verification_url, token)
        self.mailer.send(email, VERIFICATION_SUBJECT, html)
        self.log.info("verification_sent", email=email)

    def register(self, payload: UserPayload) -> User:
        """Create the user, then its profile, then mail a verification link.

        Users coming from an external identity provider (``externalId`` set) are not
        mailed.
        """
        token = generate_token(42)
        body = payload.model_copy(update={"token": token}).model_dump(mode="json", by_alias=True, exclude_none=True)

        resp = self._call("POST", self.config.service_url(USER_SERVICE), body)
        self._expect(resp, 200, 201)
        user: User = self._decode(resp, User)
        user.fullname = payload.fullname

        profile = UserProfile(fullname=user.fullname, email=user.email)
        resp = self._call(
            "PUT",
            f"{self.config.service_url(PROFILE_SERVICE)}/{user.id}",
            profile.model_dump(by_alias=True, exclude={"user_id"}),
        )
        self._expect(resp, 200, 204)

        if payload.external_id is None and payload.send_activation_mail:
            self._send_verification(user.email, user.fullname, token)

        self.log.info("user_registered", user_id=user.id, email=user.email)
        return user

    def resend_verification(self, email: str) -> None:
        """Reset the verification token for ``email`` and mail it again."""
        resp = self._call("POST", f"{self.config.service_url(USER_SERVICE)}/verification/reset", {"email": email})
        self._expect(resp, 200)
        reset: VerificationReset = self._decode(resp, VerificationReset)

        resp = self._call("GET", f"{self.config.service_url(PROFILE_SERVICE)}/{reset.id}")
        self._expect(resp, 200)
        profile: UserProfile = self._decode(resp, UserProfile)

        self._send_verification(email, profile.fullname, reset.token)
