from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from careerautomate.errors import ServiceError
from careerautomate.services.http import ServiceClient
from careerautomate.types import Profile

logger = logging.getLogger(__name__)


class OnboardingServiceClient(ServiceClient):
    """Profile document owned by the onboarding service.

    The service answers 404 for users that never finished signup; that case is
    reported as ``None`` so callers can treat it as "not onboarded".
    """

    def get_profile(self, token: str) -> Profile | None:
        try:
            data = self.request_json("GET", "", token=token, fallback="Failed to fetch profile")
        except ServiceError as exc:
            if exc.status_code == 404:
                return None
            raise
        if not isinstance(data, dict):
            return None
        try:
            return Profile.model_validate(data)
        except ValidationError as exc:
            logger.error("Unreadable profile document: %s", exc)
            raise ServiceError("Failed to fetch profile", status_code=502) from exc

    def update_profile(self, token: str, payload: dict[str, Any]) -> Profile:
        data = self.request_json("PUT", "", token=token, json=payload, fallback="Failed to update profile")
        try:
            return Profile.model_validate(data if isinstance(data, dict) else payload)
        except ValidationError as exc:
            logger.error("Unreadable profile document after update: %s", exc)
            raise ServiceError("Failed to update profile", status_code=502) from exc
