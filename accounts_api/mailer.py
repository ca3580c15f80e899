import logging
import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from jinja2 import Environment, FileSystemLoader, select_autoescape

from accounts_api.core.config import settings

logger = logging.getLogger(__name__)

template_dir = os.path.join(os.path.dirname(__file__), 'email_templates')
env = Environment(loader=FileSystemLoader(template_dir), autoescape=select_autoescape(['html']))


def send_email(to_email: str, subject: str, template_name: str, context: dict):
    template = env.get_template(template_name)
    html_content = template.render(context)

    msg = MIMEMultipart()
    msg['From'] = settings.SMTP_USER
    msg['To'] = to_email
    msg['Subject'] = subject

    msg.attach(MIMEText(html_content, 'html'))

    with smtplib.SMTP(settings.SMTP_SERVER, settings.SMTP_PORT) as server:
        server.starttls()
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.sendmail(settings.SMTP_USER, to_email, msg.as_string())
    logger.info("sent %s to account mailbox", template_name)


class InlineDelivery:
    """Hands the one-time code back to the caller inside the response message."""

    def deliver_verification(self, account, secret: str) -> str:
        return 'Your email verification code is  ' + secret

    def deliver_reset(self, account, secret: str) -> str:
        return 'Your password reset code is  ' + secret


class EmailDelivery:
    def __init__(self, send=send_email):
        self.send = send

    def deliver_verification(self, account, secret: str) -> str:
        self.send(
            to_email=account.email,
            subject="Verify your account",
            template_name="verification.html",
            context={"username": account.username, "code": secret}
        )
        return 'A verification code has been sent to your email address.'

    def deliver_reset(self, account, secret: str) -> str:
        self.send(
            to_email=account.email,
            subject="Reset your password",
            template_name="password_reset.html",
            context={"username": account.username, "code": secret}
        )
        return 'A password reset code has been sent to your email address.'


def get_delivery(mode: str = None):
    mode = mode or settings.SECRET_DELIVERY
    if mode == "email":
        return EmailDelivery()
    if mode == "inline":
        return InlineDelivery()
    raise ValueError(f"unknown secret delivery mode: {mode!r}")
