"""
Development email transport - Implements EmailSender protocol.

Selected with EMAIL_BACKEND=console. Instead of mailing the claimant, the
code is written to the application log so a developer can complete an
email claim locally.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """Writes verification codes to the log; delivery always succeeds."""

    def send_verification_code(self, email: str, code: str) -> bool:
        logger.info("[CLAIM VERIFICATION] Email: %s Code: %s", email, code)
        return True
