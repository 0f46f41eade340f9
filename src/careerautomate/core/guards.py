from __future__ import annotations

import logging
from dataclasses import dataclass

from careerautomate.core.clock import Clock, SystemClock
from careerautomate.core.session_store import SessionStore
from careerautomate.core.session_timeout import SessionTimeoutWatchdog
from careerautomate.db.repositories import as_utc
from careerautomate.services.onboarding import OnboardingServiceClient
from careerautomate.types import Profile, User

logger = logging.getLogger(__name__)

LOGIN_URL = "/login"
SESSION_EXPIRED_URL = "/login?session_expired=true"
BLOCKED_URL = "/blocked"
ONBOARDING_URL = "/onboarding"
DASHBOARD_URL = "/dashboard"

# page loads and form posts are user input for the idle timer
NAVIGATION_EVENT = "click"


class RedirectRequired(Exception):
    def __init__(self, url: str):
        super().__init__(url)
        self.url = url


@dataclass(slots=True)
class Viewer:
    session_id: str
    user: User
    token: str
    profile: Profile | None

    @property
    def onboarded(self) -> bool:
        return self.profile is not None and self.profile.onboarding_completed

    @property
    def display_name(self) -> str:
        if self.profile and self.profile.full_name:
            return self.profile.full_name
        return self.user.email.split("@")[0] if self.user.email else "User"


class RouteGate:
    """Ordered checks in front of every protected page.

    session present -> not idle-expired -> not blocked -> onboarding done.
    Each failed check raises ``RedirectRequired``; a profile lookup that fails
    for any reason other than 404 propagates as ``ServiceError``.
    """

    def __init__(
        self,
        sessions: SessionStore,
        onboarding: OnboardingServiceClient,
        watchdog: SessionTimeoutWatchdog,
        clock: Clock | None = None,
    ):
        self.sessions = sessions
        self.onboarding = onboarding
        self.watchdog = watchdog
        self.clock = clock or SystemClock()

    def require_session(self, session_id: str | None, *, touch: bool = True) -> tuple[str, User, str]:
        row = self.sessions.get(session_id)
        if row is None or not row.access_token:
            raise RedirectRequired(LOGIN_URL)

        now = self.clock.now()
        last_activity = as_utc(row.last_activity_at)
        if self.watchdog.is_expired(last_activity, now):
            logger.info("Idle timeout user_id=%s", row.user_id)
            self.sessions.sign_out(row.id)
            raise RedirectRequired(SESSION_EXPIRED_URL)

        if touch and self.watchdog.register_activity(last_activity, NAVIGATION_EVENT, now) is not None:
            self.sessions.touch(row.id)
        return row.id, User(id=row.user_id, email=row.email), row.access_token

    def resolve(
        self,
        session_id: str | None,
        *,
        require_onboarded: bool = True,
        allow_blocked: bool = False,
    ) -> Viewer:
        sid, user, token = self.require_session(session_id)
        profile = self.onboarding.get_profile(token)
        viewer = Viewer(session_id=sid, user=user, token=token, profile=profile)

        if profile is not None and profile.is_blocked and not allow_blocked:
            raise RedirectRequired(BLOCKED_URL)
        if require_onboarded and not viewer.onboarded:
            raise RedirectRequired(ONBOARDING_URL)
        return viewer
