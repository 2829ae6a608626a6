"""
SMTP email sender adapter - Implements EmailSender protocol with smtplib.

Transport errors and timeouts are reported as False so the domain can fail
closed instead of storing a claim whose code never arrived.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage

logger = logging.getLogger(__name__)

SUBJECT = "Verify your business claim"

TEXT_BODY = """You have requested to claim a business listing.

Your verification code is: {code}

The code expires in 15 minutes. If you did not request this, please ignore this email.
"""


class SmtpEmailSender:
    """Implements EmailSender protocol via an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: str | None = None,
        password: str | None = None,
        use_ssl: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._from_address = from_address
        self._username = username
        self._password = password
        self._use_ssl = use_ssl or port == 465
        self._timeout = timeout

    def build_message(self, email: str, code: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._from_address
        message["To"] = email
        message["Subject"] = SUBJECT
        message.set_content(TEXT_BODY.format(code=code))
        return message

    def send_verification_code(self, email: str, code: str) -> bool:
        """
        Deliver the code through the configured relay.

        Returns:
            True once the relay accepted the message, False on any SMTP,
            network or timeout error
        """
        message = self.build_message(email, code)
        context = ssl.create_default_context()
        try:
            if self._use_ssl:
                client = smtplib.SMTP_SSL(
                    self._host, self._port, timeout=self._timeout, context=context
                )
            else:
                client = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
            with client:
                client.ehlo()
                if not self._use_ssl and client.has_extn("starttls"):
                    client.starttls(context=context)
                if self._username:
                    client.login(self._username, self._password or "")
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send verification email to %s: %s", email, e)
            return False

        logger.info("Verification email sent to %s", email)
        return True
