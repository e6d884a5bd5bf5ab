"""
Console notifier adapter - Implements Notifier protocol.

This module provides a console-based implementation of the domain's
notifier port, logging passcodes and reset tokens for development use.
"""

import logging

from passgate.domain.models import OtpMethod

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """
    Implements Notifier protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints codes and tokens to stdout.
    """

    def send_otp(self, destination: str, method: OtpMethod, code: str) -> None:
        """
        Log a one-time passcode (simulates email/SMS delivery).

        Args:
            destination: Email address or phone number
            method: Delivery channel
            code: Numeric passcode
        """
        logger.info("[OTP] %s: %s Code: %s", method.value.upper(), destination, code)

    def send_reset_token(self, destination: str, token: str) -> None:
        logger.info("[RESET] Email: %s Token: %s", destination, token)
