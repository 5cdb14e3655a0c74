"""
Email notifications for account verification and password reset.

Messages are rendered to both HTML and plaintext and delivered over SMTP in a
worker thread. Delivery problems are logged and reported as ``False``; they
never propagate to the account operation that triggered them.
"""

import asyncio
import html
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
import structlog

from ..core.config import Settings

logger = structlog.get_logger()

BUTTON_COLOR = "#22BC66"
DEFAULT_OUTRO = "Need help, or have questions? Just reply to this email, we'd love to help."


@dataclass(frozen=True)
class MailContent:
    """Structured body of a transactional email."""

    name: str
    intro: str
    instructions: str
    button_text: str
    link: str
    outro: str = DEFAULT_OUTRO


def email_verification_content(username: str, verification_url: str) -> MailContent:
    return MailContent(
        name=username,
        intro="Welcome to our app! We're very excited to have you on board.",
        instructions="To verify your email please click on the following button",
        button_text="Verify your email",
        link=verification_url,
    )


def forgot_password_content(username: str, reset_url: str) -> MailContent:
    return MailContent(
        name=username,
        intro="We got a request to reset the password of your account",
        instructions="To reset your password click on the following button or link",
        button_text="Reset password",
        link=reset_url,
    )


def render_text(content: MailContent, product_name: str) -> str:
    return "\n\n".join([
        f"Hi {content.name},",
        content.intro,
        f"{content.instructions}:\n{content.link}",
        content.outro,
        f"Yours truly,\n{product_name}",
    ]) + "\n"


def render_html(content: MailContent, product_name: str, product_link: str) -> str:
    esc = html.escape
    return (
        '<div style="font-family:Arial,sans-serif;line-height:1.5">'
        f"<p>Hi {esc(content.name)},</p>"
        f"<p>{esc(content.intro)}</p>"
        f"<p>{esc(content.instructions)}</p>"
        f'<p><a href="{esc(content.link, quote=True)}" '
        f'style="background:{BUTTON_COLOR};color:#fff;padding:12px 16px;'
        f'border-radius:4px;text-decoration:none">{esc(content.button_text)}</a></p>'
        f"<p>{esc(content.outro)}</p>"
        f'<p style="color:#666;font-size:12px">'
        f'<a href="{esc(product_link, quote=True)}">{esc(product_name)}</a></p>'
        "</div>"
    )


class EmailDispatcher:
    """SMTP-backed notification dispatcher."""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.use_tls = settings.SMTP_TLS
        self.timeout = settings.SMTP_TIMEOUT_SECONDS
        self._user = settings.SMTP_USER
        self._password = settings.SMTP_PASSWORD
        self.sender = settings.EMAILS_FROM_EMAIL
        self.product_name = settings.MAIL_PRODUCT_NAME
        self.product_link = settings.MAIL_PRODUCT_LINK

    def build_message(self, to: str, subject: str, content: MailContent) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.product_name, self.sender))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(render_text(content, self.product_name))
        message.add_alternative(
            render_html(content, self.product_name, self.product_link),
            subtype="html",
        )
        return message

    async def send(self, to: str, subject: str, content: MailContent) -> bool:
        """
        Send an email without ever raising.

        Args:
            to: Recipient address
            subject: Subject line
            content: Structured message body

        Returns:
            True if the SMTP server accepted the message
        """
        if not self.host:
            logger.warning("Email transport not configured, message dropped", subject=subject)
            return False

        try:
            message = self.build_message(to, subject, content)
            await asyncio.to_thread(self._deliver, message)
        except Exception as e:
            logger.error("Email delivery failed", subject=subject, error=str(e))
            return False

        logger.info("Email sent", subject=subject)
        return True

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self._user:
                smtp.login(self._user, self._password or "")
            smtp.send_message(message)
