from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Literal

from careerautomate.errors import AuthError
from careerautomate.services.auth import AuthServiceClient
from careerautomate.types import AuthTokens

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6

SignupStep = Literal["signup", "verify", "done"]


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value.strip()))


def validate_login(email: str, password: str) -> str | None:
    if not email.strip():
        return "Email is required"
    if not password:
        return "Password is required"
    return None


def validate_signup(email: str, password: str, confirm_password: str) -> str | None:
    if not is_valid_email(email):
        return "Please enter a valid email address"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if password != confirm_password:
        return "Passwords do not match"
    return None


@dataclass(slots=True)
class SignupFlow:
    """Two-screen signup: credentials, then the emailed OTP.

    The OTP is never part of the flow state, so every entry into the verify
    screen starts with an empty code.
    """

    step: SignupStep = "signup"
    email: str = ""
    error: str = ""
    tokens: AuthTokens | None = field(default=None, repr=False)

    def submit_signup(
        self,
        auth: AuthServiceClient,
        *,
        email: str,
        password: str,
        confirm_password: str,
    ) -> SignupFlow:
        email = email.strip()
        message = validate_signup(email, password, confirm_password)
        if message:
            return SignupFlow(step="signup", email=email, error=message)
        try:
            auth.register(email, password)
        except AuthError as exc:
            logger.info("Signup rejected email=%s detail=%s", email, exc.user_message)
            return SignupFlow(step="signup", email=email, error=exc.user_message)
        return SignupFlow(step="verify", email=email)

    def submit_otp(self, auth: AuthServiceClient, *, otp: str) -> SignupFlow:
        otp = otp.strip()
        if not otp:
            return SignupFlow(step="verify", email=self.email, error="One-time password is required")
        try:
            tokens = auth.verify_otp(self.email, otp)
        except AuthError as exc:
            logger.info("OTP verification failed email=%s detail=%s", self.email, exc.user_message)
            return SignupFlow(step="verify", email=self.email, error=exc.user_message)
        return SignupFlow(step="done", email=self.email, tokens=tokens)

    def back(self) -> SignupFlow:
        return SignupFlow(step="signup", email=self.email)
