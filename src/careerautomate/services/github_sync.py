from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from careerautomate.services.http import ServiceClient


class GitHubSyncClient(ServiceClient):
    def authorize_url(self, user_id: str, redirect_to: str | None = None) -> str:
        params = {"user_id": user_id}
        if redirect_to:
            params["redirect_to"] = redirect_to
        return f"{self.url('/v1/github/authorize')}?{urlencode(params)}"

    def sync_projects(self, token: str) -> dict[str, Any]:
        data = self.request_json("POST", "/v1/projects/sync", token=token, fallback="Failed to sync projects")
        return data if isinstance(data, dict) else {}

    def describe(self, token: str, project_id: str) -> dict[str, Any]:
        data = self.request_json(
            "POST",
            f"/v1/projects/{project_id}/describe",
            token=token,
            fallback="Failed to generate description",
        )
        return data if isinstance(data, dict) else {}

    def detect_genre(self, token: str, project_id: str) -> dict[str, Any]:
        data = self.request_json(
            "POST",
            f"/v1/projects/{project_id}/detect-genre",
            token=token,
            fallback="Failed to detect project genre",
        )
        return data if isinstance(data, dict) else {}
