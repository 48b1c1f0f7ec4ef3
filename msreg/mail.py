from __future__ import annotations

import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from .errors import ConfigError, MailError

VERIFICATION_SUBJECT = "Verify Your Account!"


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> None: ...


class SmtpMailer:
    """Send HTML mail over SMTP (STARTTLS) using the config ``mail`` block.

    Keys: host, port, user, password. ``user`` doubles as the From address.
    """

    def __init__(self, mail: dict[str, str]) -> None:
        self.host = mail.get("host", "")
        self.user = mail.get("user", "")
        self.password = mail.get("password", "")
        try:
            self.port = int(mail.get("port", "587"))
        except ValueError as e:
            raise ConfigError(f"Invalid mail port: {mail.get('port')!r}") from e

    def send(self, to: str, subject: str, html: str) -> None:
        msg = MIMEMultipart()
        msg["From"] = self.user
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port) as server:
                server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.sendmail(self.user, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"Cannot send mail to {to}: {e}") from e


def render_template(template_path: str, **variables: object) -> str:
    env = Environment(
        loader=FileSystemLoader(os.path.dirname(os.path.abspath(template_path))),
        autoescape=select_autoescape(["html", "xml"]),
    )
    try:
        return env.get_template(os.path.basename(template_path)).render(**variables)
    except TemplateError as e:
        raise MailError(f"Cannot render {template_path}: {e}") from e


def render_verification_email(template_path: str, name: str, verification_url: str, token: str) -> str:
    return render_template(template_path, Name=name, VerificationURL=verification_url, Token=token)
