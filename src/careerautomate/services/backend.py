from __future__ import annotations

from typing import Any
from urllib.parse import quote

from careerautomate.errors import ServiceError
from careerautomate.services.http import ServiceClient
from careerautomate.types import User

Filters = dict[str, Any]


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    if value is None:
        return "is.null"
    return f"eq.{value}"


def build_query(
    *,
    columns: str | None = None,
    filters: Filters | None = None,
    order: str | None = None,
    descending: bool = True,
) -> dict[str, str]:
    params: dict[str, str] = {}
    if columns:
        params["select"] = columns
    for key, value in (filters or {}).items():
        params[key] = _filter_value(value)
    if order:
        params["order"] = f"{order}.{'desc' if descending else 'asc'}"
    return params


def parse_content_range(value: str | None) -> int:
    # "0-9/42" or "*/0"
    if not value or "/" not in value:
        return 0
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class BackendClient(ServiceClient):
    """Row, auth and storage access on the managed backend.

    Every call carries the project's anon key plus the signed-in user's bearer
    token so row-level security applies exactly as it would for the browser.
    """

    def _api_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"apikey": self.config.api_key}
        if extra:
            headers.update(extra)
        return headers

    # auth

    def get_user(self, token: str) -> User:
        data = self.request_json(
            "GET",
            "/auth/v1/user",
            token=token,
            headers=self._api_headers(),
            fallback="Unable to load the signed-in user",
        )
        if not isinstance(data, dict) or not data.get("id"):
            raise ServiceError("Unable to load the signed-in user")
        return User(id=str(data["id"]), email=str(data.get("email") or ""))

    def sign_out(self, token: str) -> None:
        self.request("POST", "/auth/v1/logout", token=token, headers=self._api_headers(), fallback="Sign out failed")

    # rows

    def select(
        self,
        table: str,
        token: str | None,
        *,
        columns: str = "*",
        filters: Filters | None = None,
        order: str | None = None,
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        data = self.request_json(
            "GET",
            f"/rest/v1/{table}",
            token=token,
            params=build_query(columns=columns, filters=filters, order=order, descending=descending),
            headers=self._api_headers(),
            fallback=f"Failed to load {table}",
        )
        return data if isinstance(data, list) else []

    def select_one(
        self,
        table: str,
        token: str,
        *,
        columns: str = "*",
        filters: Filters | None = None,
    ) -> dict[str, Any] | None:
        rows = self.select(table, token, columns=columns, filters=filters)
        return rows[0] if rows else None

    def count(self, table: str, token: str, *, filters: Filters | None = None) -> int:
        response = self.request(
            "GET",
            f"/rest/v1/{table}",
            token=token,
            params=build_query(columns="id", filters=filters),
            headers=self._api_headers({"Prefer": "count=exact", "Range": "0-0"}),
            fallback=f"Failed to count {table}",
        )
        return parse_content_range(response.headers.get("Content-Range"))

    def insert(self, table: str, token: str, values: dict[str, Any]) -> dict[str, Any]:
        data = self.request_json(
            "POST",
            f"/rest/v1/{table}",
            token=token,
            json=values,
            headers=self._api_headers({"Prefer": "return=representation"}),
            fallback=f"Failed to save {table}",
        )
        if isinstance(data, list) and data:
            return data[0]
        return values

    def update(self, table: str, token: str, values: dict[str, Any], *, filters: Filters) -> list[dict[str, Any]]:
        if not filters:
            raise ValueError("refusing to update without filters")
        data = self.request_json(
            "PATCH",
            f"/rest/v1/{table}",
            token=token,
            json=values,
            params=build_query(filters=filters),
            headers=self._api_headers({"Prefer": "return=representation"}),
            fallback=f"Failed to update {table}",
        )
        return data if isinstance(data, list) else []

    def delete(self, table: str, token: str, *, filters: Filters) -> None:
        if not filters:
            raise ValueError("refusing to delete without filters")
        self.request(
            "DELETE",
            f"/rest/v1/{table}",
            token=token,
            params=build_query(filters=filters),
            headers=self._api_headers(),
            fallback=f"Failed to delete from {table}",
        )

    # storage

    def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        *,
        token: str,
        content_type: str,
        upsert: bool = False,
    ) -> str:
        self.request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(path)}",
            token=token,
            data=content,
            headers=self._api_headers(
                {"Content-Type": content_type, "x-upsert": "true" if upsert else "false"}
            ),
            fallback="File upload failed. Please try again.",
        )
        return self.public_url(bucket, path)

    def public_url(self, bucket: str, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return self.url(f"/storage/v1/object/public/{bucket}/{quote(path)}")

    def remove(self, bucket: str, paths: list[str], *, token: str) -> None:
        if not paths:
            return
        self.request(
            "DELETE",
            f"/storage/v1/object/{bucket}",
            token=token,
            json={"prefixes": paths},
            headers=self._api_headers(),
            fallback="Failed to remove stored file",
        )


def storage_path_from_url(url: str, *, segments: int = 2) -> str:
    """Last ``segments`` path parts of a public object URL (``user_id/file``)."""
    return "/".join(url.split("?")[0].rstrip("/").split("/")[-segments:])
