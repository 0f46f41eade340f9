from __future__ import annotations

from careerautomate.errors import AuthError
from careerautomate.services.http import ServiceClient
from careerautomate.types import AuthTokens

OAUTH_PROVIDERS = ("google", "github")


class AuthServiceClient(ServiceClient):
    def register(self, email: str, password: str) -> dict:
        data = self.request_json(
            "POST",
            "/auth/register",
            json={"email": email, "password": password},
            fallback="Signup failed",
            error_cls=AuthError,
        )
        return data if isinstance(data, dict) else {}

    def login(self, email: str, password: str) -> AuthTokens:
        data = self.request_json(
            "POST",
            "/auth/login",
            json={"email": email, "password": password},
            fallback="Login failed",
            error_cls=AuthError,
        )
        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthError("Login failed")
        return AuthTokens.model_validate(data)

    def verify_otp(self, email: str, otp: str) -> AuthTokens | None:
        data = self.request_json(
            "POST",
            "/auth/verify-otp",
            json={"email": email, "otp": otp},
            fallback="Verification failed",
            error_cls=AuthError,
        )
        if isinstance(data, dict) and data.get("access_token"):
            return AuthTokens.model_validate(data)
        return None

    def oauth_login_url(self, provider: str) -> str:
        if provider not in OAUTH_PROVIDERS:
            raise ValueError(f"unsupported OAuth provider '{provider}'")
        return self.url(f"/auth/{provider}/login")
