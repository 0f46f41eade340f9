from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from careerautomate.core.guards import Viewer
from careerautomate.core.wizard import FormLike
from careerautomate.errors import AutomationsPaused, ServiceError
from careerautomate.services.backend import BackendClient
from careerautomate.services.github_sync import GitHubSyncClient
from careerautomate.services.resume import ALLOWED_TEMPLATES, TEMPLATE_NAMES, ResumeServiceClient
from careerautomate.types import (
    CertificateDocument,
    GeneratedResume,
    GitHubIntegration,
    Notification,
    Profile,
    Project,
    ResumeDocument,
    ResumeTemplate,
    SystemControlsSnapshot,
)

logger = logging.getLogger(__name__)

SETTINGS_SECTIONS = ("personal", "skills", "career", "api_keys")
RESUME_DOCUMENT_TYPE = "Resume"


def _own(viewer: Viewer, **filters: Any) -> dict[str, Any]:
    return {"user_id": viewer.user.id, **filters}


def ensure_automations_allowed(controls: SystemControlsSnapshot) -> None:
    if controls.automations_stopped or controls.emergency_stop:
        raise AutomationsPaused()


# header and dashboard


@dataclass(slots=True)
class HeaderInfo:
    name: str
    email: str
    photo_url: str | None
    unread_count: int


def load_header(backend: BackendClient, viewer: Viewer) -> HeaderInfo:
    try:
        unread = backend.count("notifications", viewer.token, filters=_own(viewer, is_read=False))
    except ServiceError as exc:
        logger.error("Error fetching notifications: %s", exc)
        unread = 0
    return HeaderInfo(
        name=viewer.display_name,
        email=viewer.user.email,
        photo_url=viewer.profile.profile_photo_url if viewer.profile else None,
        unread_count=unread,
    )


@dataclass(slots=True)
class DashboardStats:
    counts: dict[str, int | None] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


DASHBOARD_COUNTS: dict[str, tuple[str, dict[str, Any]]] = {
    "projects": ("projects", {}),
    "resumes": ("documents", {"document_type": RESUME_DOCUMENT_TYPE}),
    "certificates": ("certificate_documents", {}),
    "unread_notifications": ("notifications", {"is_read": False}),
}


def load_dashboard_stats(backend: BackendClient, viewer: Viewer) -> DashboardStats:
    stats = DashboardStats()
    for name, (table, filters) in DASHBOARD_COUNTS.items():
        try:
            stats.counts[name] = backend.count(table, viewer.token, filters=_own(viewer, **filters))
        except ServiceError as exc:
            logger.error("Error counting %s: %s", table, exc)
            stats.counts[name] = None
            stats.errors[name] = exc.user_message
    return stats


# projects


def list_projects(backend: BackendClient, viewer: Viewer) -> list[Project]:
    rows = backend.select("projects", viewer.token, filters=_own(viewer), order="created_at")
    return [Project.model_validate(row) for row in rows]


def sync_projects(github: GitHubSyncClient, viewer: Viewer) -> int:
    result = github.sync_projects(viewer.token)
    synced = result.get("synced", result.get("count", 0))
    logger.info("Project sync user_id=%s synced=%s", viewer.user.id, synced)
    return int(synced or 0)


def describe_project(
    github: GitHubSyncClient,
    viewer: Viewer,
    project_id: str,
    controls: SystemControlsSnapshot,
) -> str:
    ensure_automations_allowed(controls)
    result = github.describe(viewer.token, project_id)
    return str(result.get("ai_description") or result.get("description") or "")


def detect_project_genre(
    github: GitHubSyncClient,
    viewer: Viewer,
    project_id: str,
    controls: SystemControlsSnapshot,
) -> list[str]:
    ensure_automations_allowed(controls)
    result = github.detect_genre(viewer.token, project_id)
    genres = result.get("genres") or []
    return [str(genre) for genre in genres]


# documents


def list_resumes(backend: BackendClient, viewer: Viewer) -> list[ResumeDocument]:
    rows = backend.select(
        "documents",
        viewer.token,
        filters=_own(viewer, document_type=RESUME_DOCUMENT_TYPE),
        order="updated_at",
    )
    return [ResumeDocument.model_validate(row) for row in rows]


def list_certificates(backend: BackendClient, viewer: Viewer) -> list[CertificateDocument]:
    rows = backend.select("certificate_documents", viewer.token, filters=_own(viewer), order="created_at")
    return [CertificateDocument.model_validate(row) for row in rows]


def get_certificate(backend: BackendClient, viewer: Viewer, document_id: str) -> CertificateDocument | None:
    row = backend.select_one("certificate_documents", viewer.token, filters=_own(viewer, id=document_id))
    return CertificateDocument.model_validate(row) if row else None


def rename_certificate(backend: BackendClient, viewer: Viewer, document_id: str, name: str) -> bool:
    name = name.strip()
    if not name:
        return False
    backend.update(
        "certificate_documents",
        viewer.token,
        {"document_name": name},
        filters=_own(viewer, id=document_id),
    )
    return True


def delete_resume(backend: BackendClient, viewer: Viewer, document_id: str) -> None:
    backend.delete("documents", viewer.token, filters=_own(viewer, id=document_id))


@dataclass(slots=True)
class ResumeForm:
    enabled: bool
    notice: str = ""
    templates: list[ResumeTemplate] = field(default_factory=list)
    roles: list[str] = field(default_factory=list)
    error: str = ""


def load_resume_form(
    resume: ResumeServiceClient,
    viewer: Viewer,
    controls: SystemControlsSnapshot,
) -> ResumeForm:
    if not resume.enabled:
        return ResumeForm(enabled=False, notice="Resume generation is not configured for this deployment.")
    if controls.automations_stopped or controls.emergency_stop:
        return ResumeForm(enabled=False, notice=str(AutomationsPaused()))

    roles = list(viewer.profile.career_preferences.roles_targeted) if viewer.profile else []
    try:
        options = resume.options(viewer.token)
    except ServiceError as exc:
        logger.error("Error fetching resume options: %s", exc)
        return ResumeForm(enabled=True, roles=roles, error=exc.user_message)

    if not roles:
        roles = list(options.genres)
    return ResumeForm(enabled=True, templates=options.templates, roles=roles)


def generate_resume(
    resume: ResumeServiceClient,
    viewer: Viewer,
    controls: SystemControlsSnapshot,
    *,
    role: str,
    template_id: str,
) -> GeneratedResume:
    if not role or template_id not in ALLOWED_TEMPLATES:
        raise ValueError("Please select a role and template")
    ensure_automations_allowed(controls)
    result = resume.generate(viewer.token, genre=role, template_id=template_id)
    logger.info("Resume generated user_id=%s document_id=%s", viewer.user.id, result.document_id)
    return result


def template_name(template_id: str | None) -> str:
    return TEMPLATE_NAMES.get(template_id or "", template_id or "")


# notifications


def list_notifications(backend: BackendClient, viewer: Viewer) -> list[Notification]:
    rows = backend.select("notifications", viewer.token, filters=_own(viewer), order="created_at")
    return [Notification.model_validate(row) for row in rows]


def mark_notification_read(backend: BackendClient, viewer: Viewer, notification_id: str) -> None:
    backend.update("notifications", viewer.token, {"is_read": True}, filters=_own(viewer, id=notification_id))


# settings


def load_profile_row(backend: BackendClient, viewer: Viewer) -> Profile | None:
    row = backend.select_one("profiles", viewer.token, filters={"id": viewer.user.id})
    return Profile.model_validate(row) if row else None


def load_github_integration(backend: BackendClient, viewer: Viewer) -> GitHubIntegration:
    try:
        row = backend.select_one(
            "github_integrations",
            viewer.token,
            columns="github_username,is_active",
            filters=_own(viewer),
        )
    except ServiceError as exc:
        logger.error("Error checking GitHub connection: %s", exc)
        return GitHubIntegration()
    return GitHubIntegration.model_validate(row) if row else GitHubIntegration()


def _form_text(form: FormLike, key: str) -> str:
    return str(form.get(key) or "").strip()


def _form_list(form: FormLike, key: str) -> list[str]:
    return [str(value).strip() for value in form.getlist(key) if str(value).strip()]


def section_values(section: str, profile: Profile, form: FormLike) -> dict[str, Any]:
    """Row update for one settings section built from its posted form."""
    if section == "personal":
        return {
            key: _form_text(form, key) or None
            for key in (
                "full_name",
                "date_of_birth",
                "phone_number",
                "secondary_email",
                "address",
                "linkedin_url",
                "github_username",
                "summary",
            )
        }
    if section == "skills":
        return {"skills": list(dict.fromkeys(_form_list(form, "skills")))}
    if section == "career":
        lpa = _form_text(form, "min_target_lpa")
        preferences = profile.career_preferences.model_copy(
            update={
                "roles_targeted": _form_list(form, "roles_targeted"),
                "min_target_lpa": int(lpa) if lpa.isdigit() else None,
                "preferred_locations": [
                    part.strip() for part in _form_text(form, "preferred_locations").split(",") if part.strip()
                ],
                "work_preference": _form_list(form, "work_preference"),
                "other_preferences": _form_list(form, "other_preferences"),
            }
        )
        return {"career_preferences": preferences.model_dump()}
    if section == "api_keys":
        keys = profile.api_keys.model_copy(
            update={name: _form_text(form, name) or None for name in type(profile.api_keys).model_fields}
        )
        return {"api_keys": keys.model_dump()}
    raise ValueError(f"Unknown settings section: {section}")


def save_profile(backend: BackendClient, viewer: Viewer, values: dict[str, Any], now: datetime) -> None:
    backend.update("profiles", viewer.token, {**values, "updated_at": now.isoformat()}, filters={"id": viewer.user.id})
    logger.info("Profile updated user_id=%s fields=%s", viewer.user.id, sorted(values))


def add_profile_skill(backend: BackendClient, viewer: Viewer, profile: Profile, skill: str, now: datetime) -> bool:
    skill = skill.strip()
    if not skill or skill in profile.skills:
        return False
    save_profile(backend, viewer, {"skills": [*profile.skills, skill]}, now)
    return True


def remove_profile_skill(backend: BackendClient, viewer: Viewer, profile: Profile, index: int, now: datetime) -> None:
    skills = [skill for i, skill in enumerate(profile.skills) if i != index]
    save_profile(backend, viewer, {"skills": skills}, now)
