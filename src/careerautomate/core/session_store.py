from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from careerautomate.core.clock import Clock, SystemClock
from careerautomate.db.models import UISession
from careerautomate.db.repositories import Repository
from careerautomate.errors import AuthError, ServiceError
from careerautomate.services.auth import AuthServiceClient
from careerautomate.services.backend import BackendClient
from careerautomate.types import User

logger = logging.getLogger(__name__)


class SessionStore:
    """Token persistence for one browser.

    The browser only holds an opaque session id; the access and refresh
    tokens live in ``ui_sessions``. A missing row is the authoritative
    "signed out" state regardless of what the page last rendered.
    """

    def __init__(
        self,
        session: Session,
        *,
        auth: AuthServiceClient,
        backend: BackendClient,
        clock: Clock | None = None,
    ):
        self.repo = Repository(session)
        self.auth = auth
        self.backend = backend
        self.clock = clock or SystemClock()

    def get(self, session_id: str | None) -> UISession | None:
        return self.repo.get_ui_session(session_id)

    def get_current_user(self, session_id: str | None) -> User | None:
        row = self.get(session_id)
        if row is None or not row.access_token:
            return None
        return User(id=row.user_id, email=row.email)

    def access_token(self, session_id: str | None) -> str | None:
        row = self.get(session_id)
        return row.access_token if row else None

    def sign_in(self, email: str, password: str) -> UISession:
        tokens = self.auth.login(email, password)
        return self.set_session(tokens.access_token, tokens.refresh_token)

    def set_session(self, access_token: str, refresh_token: str | None = None) -> UISession:
        if not access_token:
            raise AuthError("Missing access token")
        try:
            user = self.backend.get_user(access_token)
        except ServiceError as exc:
            raise AuthError("Unable to load your account", status_code=exc.status_code, detail=exc.detail) from exc

        row = self.repo.create_ui_session(
            access_token=access_token,
            refresh_token=refresh_token,
            user_id=user.id,
            email=user.email,
            now=self.clock.now(),
        )
        logger.info("Session started user_id=%s", user.id)
        return row

    def sign_out(self, session_id: str | None) -> None:
        row = self.get(session_id)
        if row is None:
            return
        try:
            self.backend.sign_out(row.access_token)
        except ServiceError as exc:
            logger.error("Error signing out: %s", exc)
        self.repo.delete_ui_session(row.id)
        logger.info("Session ended user_id=%s", row.user_id)

    def touch(self, session_id: str) -> None:
        self.repo.touch_ui_session(session_id, self.clock.now())
