from __future__ import annotations


class ServiceError(RuntimeError):
    """Non-2xx response or transport failure from an external service.

    ``detail`` is the server-provided message when the body carried one and is
    what the user gets to see; ``str(exc)`` falls back to a generic message.
    """

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None):
        super().__init__(detail or message)
        self.status_code = status_code
        self.detail = detail

    @property
    def user_message(self) -> str:
        return self.detail or str(self)


class AuthError(ServiceError):
    pass


class ServiceDisabled(ServiceError):
    def __init__(self, service: str):
        super().__init__(f"{service} is not configured")
        self.service = service


class UploadRejected(ValueError):
    pass


class AutomationsPaused(ServiceError):
    def __init__(self) -> None:
        super().__init__("Automations are temporarily paused by the administrators. Please try again later.")
