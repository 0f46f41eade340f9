from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./.pytest-careerautomate.db")
os.environ.setdefault("APP_ENV", "test")

import itertools
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from careerautomate.api.app import create_app
from careerautomate.config import Settings
from careerautomate.db.base import Base
from careerautomate.db.session import engine
from careerautomate.errors import AuthError, ServiceError
from careerautomate.services.auth import OAUTH_PROVIDERS
from careerautomate.services.registry import Services
from careerautomate.types import AuthTokens, GeneratedResume, Profile, ResumeOptions, ResumeTemplate, User

OTP = "123456"
_ids = itertools.count(1)


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class FakeAuth:
    enabled = True

    def __init__(self) -> None:
        self.users: dict[str, str] = {}
        self.registered: list[str] = []

    def register(self, email: str, password: str) -> dict:
        if email in self.users:
            raise AuthError("Signup failed", status_code=400, detail="Email already registered")
        self.users[email] = password
        self.registered.append(email)
        return {"message": "OTP sent"}

    def login(self, email: str, password: str) -> AuthTokens:
        if self.users.get(email) != password:
            raise AuthError("Login failed", status_code=401, detail="Invalid email or password")
        return AuthTokens(access_token=f"token-{email}", refresh_token="refresh")

    def verify_otp(self, email: str, otp: str) -> AuthTokens | None:
        if otp != OTP:
            raise AuthError("Verification failed", status_code=400, detail="Invalid or expired OTP")
        return AuthTokens(access_token=f"token-{email}", refresh_token="refresh")

    def oauth_login_url(self, provider: str) -> str:
        if provider not in OAUTH_PROVIDERS:
            raise ValueError(f"unsupported OAuth provider '{provider}'")
        return f"http://auth.test/auth/{provider}/login"


def user_id_for(email: str) -> str:
    return "user-" + email.split("@")[0]


class FakeBackend:
    """In-memory rows and objects keyed the way the real backend filters them."""

    enabled = True

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {"system_controls": []}
        self.objects: dict[tuple[str, str], bytes] = {}
        self.signed_out: list[str] = []
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, table: str = "") -> None:
        self.calls.append((op, table))
        if op in self.fail_on or f"{op}:{table}" in self.fail_on:
            raise ServiceError(f"{op} failed", status_code=500)

    def _matches(self, row: dict[str, Any], filters: dict[str, Any] | None) -> bool:
        return all(row.get(key) == value for key, value in (filters or {}).items())

    def get_user(self, token: str) -> User:
        self._check("get_user")
        if not token.startswith("token-"):
            raise ServiceError("Unable to load the signed-in user", status_code=401)
        email = token.removeprefix("token-")
        return User(id=user_id_for(email), email=email)

    def sign_out(self, token: str) -> None:
        self.signed_out.append(token)

    def select(self, table, token, *, columns="*", filters=None, order=None, descending=True):
        self._check("select", table)
        rows = [dict(row) for row in self.tables.get(table, []) if self._matches(row, filters)]
        if order:
            rows.sort(key=lambda row: row.get(order) or "", reverse=descending)
        return rows

    def select_one(self, table, token, *, columns="*", filters=None):
        rows = self.select(table, token, columns=columns, filters=filters)
        return rows[0] if rows else None

    def count(self, table, token, *, filters=None) -> int:
        self._check("count", table)
        return sum(1 for row in self.tables.get(table, []) if self._matches(row, filters))

    def insert(self, table, token, values):
        self._check("insert", table)
        row = {"id": f"{table}-{next(_ids)}", **values}
        self.tables.setdefault(table, []).append(row)
        return dict(row)

    def update(self, table, token, values, *, filters):
        self._check("update", table)
        updated = []
        for row in self.tables.get(table, []):
            if self._matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated

    def delete(self, table, token, *, filters):
        self._check("delete", table)
        self.tables[table] = [row for row in self.tables.get(table, []) if not self._matches(row, filters)]

    def upload(self, bucket, path, content, *, token, content_type, upsert=False) -> str:
        self._check("upload", bucket)
        if (bucket, path) in self.objects and not upsert:
            raise ServiceError("The resource already exists", status_code=409)
        self.objects[(bucket, path)] = content
        return self.public_url(bucket, path)

    def public_url(self, bucket: str, path: str) -> str:
        return f"http://backend.test/storage/v1/object/public/{bucket}/{path}"

    def remove(self, bucket, paths, *, token) -> None:
        self._check("remove", bucket)
        for path in paths:
            self.objects.pop((bucket, path), None)


class FakeOnboarding:
    enabled = True

    def __init__(self) -> None:
        self.profiles: dict[str, Profile] = {}
        self.submitted: list[dict[str, Any]] = []
        self.fail = False
        self.fail_update = False

    def get_profile(self, token: str) -> Profile | None:
        if self.fail:
            raise ServiceError("Failed to fetch profile", status_code=500)
        return self.profiles.get(token)

    def update_profile(self, token: str, payload: dict[str, Any]) -> Profile:
        if self.fail or self.fail_update:
            raise ServiceError("Failed to update profile", status_code=500)
        self.submitted.append(payload)
        profile = Profile.model_validate(payload)
        self.profiles[token] = profile
        return profile


class FakeResume:
    enabled = True

    def __init__(self) -> None:
        self.generated: list[dict[str, str]] = []

    def options(self, token: str) -> ResumeOptions:
        return ResumeOptions(
            templates=[
                ResumeTemplate(id="modern", name="Modern Minimal"),
                ResumeTemplate(id="classic", name="Classic Corporate"),
            ],
            genres=["Backend Developer", "Data Scientist"],
        )

    def generate(self, token: str, *, genre: str, template_id: str) -> GeneratedResume:
        self.generated.append({"genre": genre, "template_id": template_id})
        return GeneratedResume(document_id="doc-1", pdf_url="http://files.test/resume.pdf")


class FakeGitHub:
    enabled = True

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def authorize_url(self, user_id: str, redirect_to: str | None = None) -> str:
        return f"http://sync.test/v1/github/authorize?user_id={user_id}&redirect_to={redirect_to}"

    def sync_projects(self, token: str) -> dict[str, Any]:
        self.calls.append(("sync", ""))
        return {"synced": 2}

    def describe(self, token: str, project_id: str) -> dict[str, Any]:
        self.calls.append(("describe", project_id))
        return {"ai_description": "A tidy service"}

    def detect_genre(self, token: str, project_id: str) -> dict[str, Any]:
        self.calls.append(("detect-genre", project_id))
        return {"genres": ["Backend"]}


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def services() -> Services:
    return Services(
        auth=FakeAuth(),
        backend=FakeBackend(),
        onboarding=FakeOnboarding(),
        resume=FakeResume(),
        github=FakeGitHub(),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(app_env="test", system_controls_poll_sec=3600)


@pytest.fixture
def app(settings: Settings, services: Services, clock: FakeClock):
    return create_app(settings=settings, services=services, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def completed_profile(**overrides: Any) -> Profile:
    values = {
        "full_name": "Asha Rao",
        "skills": ["Python", "SQL"],
        "career_preferences": {"roles_targeted": ["Backend Developer"]},
        "onboarding_completed": True,
    }
    values.update(overrides)
    return Profile.model_validate(values)


@pytest.fixture
def sign_in(client: TestClient, services: Services) -> Callable[..., str]:
    def _sign_in(
        email: str = "asha@example.com",
        password: str = "secret123",
        *,
        profile: Profile | None | bool = True,
    ) -> str:
        services.auth.users[email] = password
        token = f"token-{email}"
        if profile is True:
            services.onboarding.profiles[token] = completed_profile()
        elif isinstance(profile, Profile):
            services.onboarding.profiles[token] = profile

        response = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
        assert response.status_code == 303
        return token

    return _sign_in
