"""SMTP delivery of sign-in codes, with a console fallback for local runs."""

import smtplib
import logging
from email.message import EmailMessage
from typing import Optional

logger = logging.getLogger(__name__)

SUBJECT = "Your mailpass sign-in code"
BODY_TEMPLATE = """\
{code} is your mailpass sign-in code.

It works once and expires in {minutes} minutes. If you did not try to sign
in, ignore this message; nobody can use the code without access to this inbox.
"""


class EmailService:
    """DeliveryChannel that mails codes over SMTP, or prints them when SMTP is unset."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_from_email: Optional[str] = None,
        code_ttl_minutes: int = 5,
    ):
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._smtp_user = smtp_user
        self._smtp_password = smtp_password
        self._smtp_from_email = smtp_from_email or smtp_user
        self._code_ttl_minutes = code_ttl_minutes

    @property
    def is_configured(self) -> bool:
        return all(
            (self._smtp_host, self._smtp_user, self._smtp_password, self._smtp_from_email)
        )

    def build_message(self, email: str, code: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = SUBJECT
        msg["From"] = self._smtp_from_email
        msg["To"] = email
        msg.set_content(BODY_TEMPLATE.format(code=code, minutes=self._code_ttl_minutes))
        return msg

    def _show_on_console(self, email: str, code: str, reason: str) -> None:
        print(f"[mailpass] sign-in code for {email}: {code} ({reason})", flush=True)

    def send_verification_code(self, email: str, code: str) -> bool:
        """
        Deliver code to email.

        Always returns True: when SMTP is unset or the send fails, the code
        is shown on the server console instead so local sign-in still works.
        """
        if not self.is_configured:
            self._show_on_console(email, code, "SMTP not configured")
            logger.info(f"Verification code for {email} written to console fallback")
            return True

        msg = self.build_message(email, code)
        try:
            with smtplib.SMTP(self._smtp_host, self._smtp_port) as server:
                server.starttls()
                server.login(self._smtp_user, self._smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery to {email} failed: {e}")
            self._show_on_console(email, code, "SMTP delivery failed")
            return True

        logger.info(f"Verification email sent to {email}")
        return True
