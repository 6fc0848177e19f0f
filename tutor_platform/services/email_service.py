"""
Outgoing email.

Messages go through SMTP when SMTP_HOST is configured. Without it (local
development, tests) the message is written to the server log instead, so the
OTP can be read from the console.
"""
from email.message import EmailMessage
from email.utils import formataddr
from fastapi import Request
import smtplib

from tutor_platform.config import Settings
from tutor_platform.exceptions import UpstreamError
from tutor_platform.logger import logger


class EmailService:
    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, to: str, subject: str, text: str, html: str = None):
        """
        Send one message.

        Raises:
        - UpstreamError: the SMTP server refused or could not be reached
        """
        if not self.settings.smtp_host:
            logger.info(f"Email to {to} (SMTP disabled): {subject}\n{text}")
            return

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.settings.email_from_name, self.settings.email_from))
        message["To"] = to
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as smtp:
                if self.settings.smtp_use_tls:
                    smtp.starttls()
                if self.settings.smtp_user:
                    smtp.login(self.settings.smtp_user, self.settings.smtp_password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {str(e)}")
            raise UpstreamError(f"Failed to send email: {str(e)}")

        logger.info(f"Email sent to {to}: {subject}")

    def send_otp_email(self, to: str, otp: str):
        minutes = self.settings.otp_expire_minutes
        self.send(
            to,
            "Verify your account - OTP code",
            f"Your verification code is {otp}. It expires in {minutes} minutes.\n"
            "If you did not request this, you can ignore this email.",
            _code_template("Verify your account", otp, minutes),
        )

    def send_password_reset_email(self, to: str, otp: str):
        minutes = self.settings.otp_expire_minutes
        self.send(
            to,
            "Reset your password - OTP code",
            f"Your password reset code is {otp}. It expires in {minutes} minutes.\n"
            "If you did not ask to reset your password, please ignore this email.",
            _code_template("Reset your password", otp, minutes),
        )

    def send_welcome_email(self, to: str):
        self.send(
            to,
            f"Welcome to {self.settings.email_from_name}!",
            f"Your account {to} has been verified. You can now log in.",
            f"<h2>Welcome to {self.settings.email_from_name}!</h2>"
            f"<p>Your account <b>{to}</b> has been verified. You can now log in.</p>",
        )

def _code_template(title: str, otp: str, minutes: int) -> str:
    return (
        f"<h2>{title}</h2>"
        f"<p>Your code is:</p>"
        f"<p style=\"font-size:28px;letter-spacing:8px;font-weight:bold\">{otp}</p>"
        f"<p>The code expires in {minutes} minutes.</p>"
    )

def get_email_service(request: Request) -> EmailService:
    """Dependency returning the app's email service."""
    return request.app.state.email_service
