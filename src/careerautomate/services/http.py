from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from careerautomate.errors import ServiceDisabled, ServiceError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceConfig:
    name: str
    base_url: str
    timeout_sec: int = 30
    api_key: str = ""


def extract_detail(response: requests.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    for key in ("detail", "message", "error_description", "msg", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, list) and value:
            # FastAPI validation errors come back as a list of {"msg": ...}
            messages = [str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in value]
            return "; ".join(messages)
    return None


class ServiceClient:
    def __init__(self, config: ServiceConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.config.base_url)

    def url(self, path: str) -> str:
        if not path:
            return self.config.base_url
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self, token: str | None, extra: dict[str, str] | None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json: Any = None,
        params: dict[str, Any] | None = None,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
        fallback: str = "Request failed",
        error_cls: type[ServiceError] = ServiceError,
    ) -> requests.Response:
        if not self.enabled:
            raise ServiceDisabled(self.config.name)

        url = self.url(path)
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                data=data,
                headers=self._headers(token, headers),
                timeout=self.config.timeout_sec,
            )
        except requests.RequestException as exc:
            logger.warning("%s request failed method=%s url=%s error=%s", self.config.name, method, url, exc)
            raise error_cls(fallback) from exc

        if not response.ok:
            detail = extract_detail(response)
            logger.warning(
                "%s returned status=%s method=%s url=%s detail=%s",
                self.config.name,
                response.status_code,
                method,
                url,
                detail,
            )
            raise error_cls(fallback, status_code=response.status_code, detail=detail)
        return response

    def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self.request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("%s returned a non-JSON body for %s %s", self.config.name, method, path)
            return None
