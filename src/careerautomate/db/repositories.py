from __future__ import annotations

import secrets
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete
from sqlalchemy.orm import Session

from careerautomate.db.models import UISession, WizardDraft


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def create_ui_session(
        self,
        *,
        access_token: str,
        refresh_token: str | None,
        user_id: str,
        email: str,
        now: datetime,
    ) -> UISession:
        row = UISession(
            id=new_session_id(),
            access_token=access_token,
            refresh_token=refresh_token or "",
            user_id=user_id,
            email=email,
            last_activity_at=now,
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def get_ui_session(self, session_id: str | None) -> UISession | None:
        if not session_id:
            return None
        return self.session.get(UISession, session_id)

    def touch_ui_session(self, session_id: str, at: datetime) -> None:
        row = self.get_ui_session(session_id)
        if row is None:
            return
        row.last_activity_at = at
        self.session.commit()

    def delete_ui_session(self, session_id: str) -> None:
        self.session.execute(delete(WizardDraft).where(WizardDraft.session_id == session_id))
        self.session.execute(delete(UISession).where(UISession.id == session_id))
        self.session.commit()

    def get_wizard_state(self, session_id: str) -> dict[str, Any] | None:
        draft = self.session.get(WizardDraft, session_id)
        if draft is None:
            return None
        return dict(draft.state_json or {})

    def save_wizard_state(self, session_id: str, state: dict[str, Any]) -> None:
        draft = self.session.get(WizardDraft, session_id)
        if draft is None:
            draft = WizardDraft(session_id=session_id, state_json=state)
            self.session.add(draft)
        else:
            draft.state_json = state
        self.session.commit()

    def delete_wizard_state(self, session_id: str) -> None:
        self.session.execute(delete(WizardDraft).where(WizardDraft.session_id == session_id))
        self.session.commit()
