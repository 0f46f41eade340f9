from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from starlette.datastructures import FormData, UploadFile

from careerautomate.api.deps import (
    get_clock,
    get_db,
    get_gate,
    get_services,
    get_session_id,
    get_session_store,
    get_settings_dep,
)
from careerautomate.config import Settings
from careerautomate.core import catalog, pages
from careerautomate.core.auth_flow import SignupFlow, validate_login
from careerautomate.core.clock import Clock
from careerautomate.core.guards import DASHBOARD_URL, RedirectRequired, RouteGate, Viewer
from careerautomate.core.session_store import SessionStore
from careerautomate.core.uploads import (
    UPLOAD_FAILED_MESSAGE,
    IncomingFile,
    delete_certificate,
    mark_done,
    mark_failed,
    mark_pending,
    store_certificate,
    store_identity_file,
    store_project_video,
    upload_constraints,
)
from careerautomate.core.wizard import (
    STEP_TITLES,
    UPLOAD_FIELDS,
    UPLOAD_PENDING_MESSAGE,
    Step,
    WizardState,
    apply_action,
    build_payload,
    merge_step_form,
    next_step,
    previous_step,
)
from careerautomate.db.models import UISession
from careerautomate.db.repositories import Repository
from careerautomate.errors import AuthError, ServiceError, UploadRejected
from careerautomate.services.registry import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["web"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
static_dir = Path(__file__).resolve().parent / "static"

MAINTENANCE_MESSAGE = "CareerAutomate is temporarily unavailable for maintenance. Please try again later."
SUBMIT_FAILED_MESSAGE = "Error submitting form. Please try again."

NOTICES = {
    "synced": "Projects synced from GitHub.",
    "described": "AI description updated.",
    "genres": "Project genres updated.",
    "video": "Intro video uploaded.",
    "resume_deleted": "Resume deleted.",
    "uploaded": "Document uploaded.",
    "renamed": "Document renamed.",
    "deleted": "Document deleted.",
    "saved": "Profile updated successfully!",
    "read": "Notification marked as read.",
}


async def read_form(request: Request) -> FormData:
    return await request.form()


def _controls(request: Request):
    return request.app.state.controls.snapshot


def _notice(code: str | None) -> str:
    return NOTICES.get(code or "", "")


def _start_session(response: Response, row: UISession, settings: Settings) -> Response:
    # browser-session cookie: no max_age, gone when the browser closes
    response.set_cookie(
        settings.session_cookie_name,
        row.id,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return response


def _incoming(upload: Any, max_bytes: int) -> IncomingFile | None:
    if not isinstance(upload, UploadFile) or not upload.filename:
        return None
    # one byte past the limit is enough to reject it
    content = upload.file.read(max_bytes + 1)
    return IncomingFile(
        file_name=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        content=content,
    )


def _shell(request: Request, services: Services, viewer: Viewer, active: str, **extra: Any) -> dict[str, Any]:
    context = {
        "viewer": viewer,
        "header": pages.load_header(services.backend, viewer),
        "controls": _controls(request),
        "active": active,
    }
    context.update(extra)
    return context


# icons and static pages


def _icon_response(*filenames: str) -> Response:
    for filename in filenames:
        icon_path = static_dir / filename
        if icon_path.is_file():
            return FileResponse(icon_path)
    return Response(status_code=204)


@router.get("/favicon.ico", include_in_schema=False)
def favicon() -> Response:
    return _icon_response("favicon.ico", "favicon.png", "favicon.svg")


@router.get("/apple-touch-icon.png", include_in_schema=False)
@router.get("/apple-touch-icon-precomposed.png", include_in_schema=False)
def apple_touch_icon() -> Response:
    return _icon_response("apple-touch-icon.png", "apple-touch-icon.svg")


@router.get("/", response_class=HTMLResponse)
def landing(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "landing.html", {})


@router.get("/terms", response_class=HTMLResponse)
def terms(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "terms.html", {})


@router.get("/privacy", response_class=HTMLResponse)
def privacy(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "privacy.html", {})


# login


def _render_login(request: Request, *, email: str = "", error: str = "", status_code: int = 200) -> HTMLResponse:
    params = request.query_params
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "controls": _controls(request),
            "maintenance_message": MAINTENANCE_MESSAGE,
            "email": email,
            "error": error,
            "session_expired": params.get("session_expired") == "true",
            "verified": params.get("verified") == "true",
        },
        status_code=status_code,
    )


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request) -> HTMLResponse:
    return _render_login(request)


@router.post("/login")
def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings_dep),
):
    if _controls(request).emergency_stop:
        return _render_login(request, status_code=503)

    email = email.strip()
    message = validate_login(email, password)
    if message:
        return _render_login(request, email=email, error=message, status_code=400)

    try:
        row = sessions.sign_in(email, password)
    except AuthError as exc:
        logger.info("Login rejected email=%s detail=%s", email, exc.user_message)
        return _render_login(request, email=email, error=exc.user_message, status_code=401)
    return _start_session(RedirectResponse(url=DASHBOARD_URL, status_code=303), row, settings)


@router.get("/auth/{provider}/login")
def oauth_login(provider: str, services: Services = Depends(get_services)):
    try:
        url = services.auth.oauth_login_url(provider)
    except ValueError:
        return Response(status_code=404)
    return RedirectResponse(url=url, status_code=303)


@router.get("/auth/callback")
def oauth_callback(
    request: Request,
    access_token: str = "",
    refresh_token: str = "",
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings_dep),
):
    if _controls(request).emergency_stop:
        return _render_login(request, status_code=503)
    if not access_token:
        # tokens may still be in the URL fragment; the page script re-submits them as a query
        return templates.TemplateResponse(request, "auth_callback.html", {})
    try:
        row = sessions.set_session(access_token, refresh_token or None)
    except AuthError as exc:
        logger.warning("OAuth callback rejected: %s", exc.user_message)
        return _render_login(request, error=exc.user_message, status_code=401)
    return _start_session(RedirectResponse(url=DASHBOARD_URL, status_code=303), row, settings)


@router.post("/logout")
def logout(
    session_id: str | None = Depends(get_session_id),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings_dep),
):
    sessions.sign_out(session_id)
    response = RedirectResponse(url="/", status_code=303)
    response.delete_cookie(settings.session_cookie_name)
    return response


# signup


def _render_signup(request: Request, flow: SignupFlow, status_code: int = 200) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "signup.html",
        {
            "flow": flow,
            "controls": _controls(request),
            "maintenance_message": MAINTENANCE_MESSAGE,
        },
        status_code=status_code,
    )


@router.get("/signup", response_class=HTMLResponse)
def signup_page(request: Request) -> HTMLResponse:
    return _render_signup(request, SignupFlow())


@router.post("/signup")
def signup_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    services: Services = Depends(get_services),
):
    if _controls(request).emergency_stop:
        return _render_signup(request, SignupFlow(), status_code=503)
    flow = SignupFlow().submit_signup(
        services.auth,
        email=email,
        password=password,
        confirm_password=confirm_password,
    )
    return _render_signup(request, flow, status_code=400 if flow.error else 200)


@router.post("/signup/verify")
def signup_verify(
    request: Request,
    email: str = Form(""),
    otp: str = Form(""),
    services: Services = Depends(get_services),
    sessions: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings_dep),
):
    if _controls(request).emergency_stop:
        return _render_signup(request, SignupFlow(step="verify", email=email.strip()), status_code=503)
    flow = SignupFlow(step="verify", email=email.strip()).submit_otp(services.auth, otp=otp)
    if flow.error:
        return _render_signup(request, flow, status_code=400)
    if flow.tokens is None:
        return RedirectResponse(url="/login?verified=true", status_code=303)
    try:
        row = sessions.set_session(flow.tokens.access_token, flow.tokens.refresh_token)
    except AuthError as exc:
        logger.warning("Verified signup could not start a session: %s", exc.user_message)
        return RedirectResponse(url="/login?verified=true", status_code=303)
    return _start_session(RedirectResponse(url="/onboarding", status_code=303), row, settings)


@router.post("/signup/back", response_class=HTMLResponse)
def signup_back(request: Request, email: str = Form("")) -> HTMLResponse:
    return _render_signup(request, SignupFlow(step="verify", email=email.strip()).back())


# onboarding


def _load_wizard(repo: Repository, session_id: str) -> WizardState:
    stored = repo.get_wizard_state(session_id)
    return WizardState.model_validate(stored) if stored else WizardState()


def _save_wizard(repo: Repository, session_id: str, state: WizardState) -> None:
    repo.save_wizard_state(session_id, state.model_dump(mode="json"))


@router.get("/onboarding", response_class=HTMLResponse)
def onboarding_page(
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    viewer = gate.resolve(session_id, require_onboarded=False)
    if viewer.onboarded:
        raise RedirectRequired(DASHBOARD_URL)

    state = _load_wizard(Repository(db), viewer.session_id)
    github = pages.load_github_integration(services.backend, viewer) if state.step == Step.CONNECT_ACCOUNTS else None
    connect_url = (
        services.github.authorize_url(viewer.user.id, "/onboarding") if services.github.enabled else None
    )
    return templates.TemplateResponse(
        request,
        "onboarding.html",
        {
            "state": state,
            "steps": STEP_TITLES,
            "github": github,
            "github_connect_url": connect_url,
            "catalog": catalog,
        },
    )


def _upload_identity(
    repo: Repository,
    services: Services,
    settings: Settings,
    viewer: Viewer,
    state: WizardState,
    field: str,
    upload: Any,
) -> WizardState:
    constraint = upload_constraints(settings)[field]
    incoming = _incoming(upload, constraint.max_bytes)
    if incoming is None:
        return state
    try:
        constraint.check(file_name=incoming.file_name, content_type=incoming.content_type, size=incoming.size)
    except UploadRejected as exc:
        return mark_failed(state, field, str(exc))

    _save_wizard(repo, viewer.session_id, mark_pending(state, field, incoming.file_name))
    try:
        url = store_identity_file(
            services.backend,
            token=viewer.token,
            user_id=viewer.user.id,
            field=field,
            file=incoming,
            constraint=constraint,
        )
    except ServiceError as exc:
        logger.error("Upload error field=%s: %s", field, exc)
        return mark_failed(_load_wizard(repo, viewer.session_id), field, UPLOAD_FAILED_MESSAGE)
    return mark_done(_load_wizard(repo, viewer.session_id), field, url, incoming.file_name)


@router.post("/onboarding")
def onboarding_submit(
    session_id: str | None = Depends(get_session_id),
    form: FormData = Depends(read_form),
    gate: RouteGate = Depends(get_gate),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings_dep),
):
    viewer = gate.resolve(session_id, require_onboarded=False)
    if viewer.onboarded:
        raise RedirectRequired(DASHBOARD_URL)

    repo = Repository(db)
    state = _load_wizard(repo, viewer.session_id)
    posted_step = str(form.get("step") or "")
    if posted_step == str(int(state.step)):
        state = state.model_copy(update={"data": merge_step_form(state.step, state.data, form), "error": ""})

    action = str(form.get("action") or "")
    if action.startswith("upload:"):
        field = action.partition(":")[2]
        if field in UPLOAD_FIELDS:
            state = _upload_identity(repo, services, settings, viewer, state, field, form.get(field))
    elif action == "next":
        state = next_step(state)
    elif action == "previous":
        state = previous_step(state)
    elif action == "finish" and state.step == Step.REVIEW:
        if state.uploading:
            state = state.model_copy(update={"error": UPLOAD_PENDING_MESSAGE})
        else:
            try:
                services.onboarding.update_profile(viewer.token, build_payload(state.data))
            except ServiceError as exc:
                logger.error("Submission error user_id=%s: %s", viewer.user.id, exc)
                state = state.model_copy(update={"error": SUBMIT_FAILED_MESSAGE})
            else:
                repo.delete_wizard_state(viewer.session_id)
                logger.info("Onboarding completed user_id=%s", viewer.user.id)
                return RedirectResponse(url=DASHBOARD_URL, status_code=303)
    elif action and action != "save":
        try:
            state = state.model_copy(update={"data": apply_action(state.data, action, form)})
        except ValueError as exc:
            logger.warning("Ignoring wizard action: %s", exc)

    _save_wizard(repo, viewer.session_id, state)
    return RedirectResponse(url="/onboarding", status_code=303)


# dashboard


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    viewer = gate.resolve(session_id)
    stats = pages.load_dashboard_stats(services.backend, viewer)
    return templates.TemplateResponse(request, "dashboard.html", _shell(request, services, viewer, "dashboard", stats=stats))


# projects


def _render_projects(
    request: Request,
    services: Services,
    viewer: Viewer,
    *,
    notice: str = "",
    error: str = "",
    status_code: int = 200,
) -> HTMLResponse:
    projects, load_error = [], ""
    try:
        projects = pages.list_projects(services.backend, viewer)
    except ServiceError as exc:
        logger.error("Error fetching projects: %s", exc)
        load_error = exc.user_message
    context = _shell(
        request,
        services,
        viewer,
        "projects",
        projects=projects,
        load_error=load_error,
        notice=notice,
        error=error,
        github_enabled=services.github.enabled,
        github_connect_url=services.github.authorize_url(viewer.user.id, "/projects") if services.github.enabled else None,
    )
    return templates.TemplateResponse(request, "projects.html", context, status_code=status_code)


@router.get("/projects", response_class=HTMLResponse)
def projects_page(
    request: Request,
    notice: str | None = None,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    viewer = gate.resolve(session_id)
    return _render_projects(request, services, viewer, notice=_notice(notice))


@router.post("/projects/sync")
def projects_sync(
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
):
    viewer = gate.resolve(session_id)
    try:
        pages.sync_projects(services.github, viewer)
    except ServiceError as exc:
        return _render_projects(request, services, viewer, error=exc.user_message, status_code=502)
    return RedirectResponse(url="/projects?notice=synced", status_code=303)


@router.post("/projects/{project_id}/describe")
def projects_describe(
    project_id: str,
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
):
    viewer = gate.resolve(session_id)
    try:
        pages.describe_project(services.github, viewer, project_id, _controls(request))
    except ServiceError as exc:
        return _render_projects(request, services, viewer, error=exc.user_message, status_code=502)
    return RedirectResponse(url="/projects?notice=described", status_code=303)


@router.post("/projects/{project_id}/detect-genre")
def projects_detect_genre(
    project_id: str,
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
):
    viewer = gate.resolve(session_id)
    try:
        pages.detect_project_genre(services.github, viewer, project_id, _controls(request))
    except ServiceError as exc:
        return _render_projects(request, services, viewer, error=exc.user_message, status_code=502)
    return RedirectResponse(url="/projects?notice=genres", status_code=303)


@router.post("/projects/{project_id}/video")
def projects_video(
    project_id: str,
    request: Request,
    session_id: str | None = Depends(get_session_id),
    form: FormData = Depends(read_form),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings_dep),
):
    viewer = gate.resolve(session_id)
    constraint = upload_constraints(settings)["project_video"]
    incoming = _incoming(form.get("video"), constraint.max_bytes)
    if incoming is None:
        return _render_projects(request, services, viewer, error="Please record or choose a video", status_code=400)
    try:
        store_project_video(
            services.backend,
            token=viewer.token,
            user_id=viewer.user.id,
            project_id=project_id,
            file=incoming,
            constraint=constraint,
        )
    except UploadRejected as exc:
        return _render_projects(request, services, viewer, error=str(exc), status_code=400)
    except ServiceError as exc:
        logger.error("Error uploading video project_id=%s: %s", project_id, exc)
        return _render_projects(request, services, viewer, error=UPLOAD_FAILED_MESSAGE, status_code=502)
    return RedirectResponse(url="/projects?notice=video", status_code=303)


# documents


def _render_documents(
    request: Request,
    services: Services,
    viewer: Viewer,
    *,
    notice: str = "",
    error: str = "",
    generated: Any = None,
    status_code: int = 200,
) -> HTMLResponse:
    resumes, resumes_error = [], ""
    try:
        resumes = pages.list_resumes(services.backend, viewer)
    except ServiceError as exc:
        logger.error("Error fetching documents: %s", exc)
        resumes_error = exc.user_message

    certificates, certificates_error = [], ""
    try:
        certificates = pages.list_certificates(services.backend, viewer)
    except ServiceError as exc:
        logger.error("Error fetching certificates: %s", exc)
        certificates_error = exc.user_message

    context = _shell(
        request,
        services,
        viewer,
        "documents",
        resumes=resumes,
        resumes_error=resumes_error,
        certificates=certificates,
        certificates_error=certificates_error,
        resume_form=pages.load_resume_form(services.resume, viewer, _controls(request)),
        certificate_types=catalog.CERTIFICATE_TYPES,
        template_name=pages.template_name,
        notice=notice,
        error=error,
        generated=generated,
    )
    return templates.TemplateResponse(request, "documents.html", context, status_code=status_code)


@router.get("/documents", response_class=HTMLResponse)
def documents_page(
    request: Request,
    notice: str | None = None,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    viewer = gate.resolve(session_id)
    return _render_documents(request, services, viewer, notice=_notice(notice))


@router.post("/documents/resumes/generate", response_class=HTMLResponse)
def documents_generate(
    request: Request,
    role: str = Form(""),
    template_id: str = Form(""),
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    viewer = gate.resolve(session_id)
    try:
        generated = pages.generate_resume(
            services.resume,
            viewer,
            _controls(request),
            role=role.strip(),
            template_id=template_id,
        )
    except ValueError as exc:
        return _render_documents(request, services, viewer, error=str(exc), status_code=400)
    except ServiceError as exc:
        logger.error("Error generating resume: %s", exc)
        return _render_documents(request, services, viewer, error=exc.user_message, status_code=502)
    return _render_documents(request, services, viewer, notice="Resume generated successfully!", generated=generated)


@router.post("/documents/resumes/{document_id}/delete")
def documents_delete_resume(
    document_id: str,
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
):
    viewer = gate.resolve(session_id)
    try:
        pages.delete_resume(services.backend, viewer, document_id)
    except ServiceError as exc:
        logger.error("Error deleting resume: %s", exc)
        return _render_documents(
            request, services, viewer, error="Error deleting resume. Please try again.", status_code=502
        )
    return RedirectResponse(url="/documents?notice=resume_deleted", status_code=303)


@router.post("/documents/certificates")
def documents_upload_certificate(
    request: Request,
    session_id: str | None = Depends(get_session_id),
    form: FormData = Depends(read_form),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
    settings: Settings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
):
    viewer = gate.resolve(session_id)
    constraint = upload_constraints(settings)["certificate"]
    document_type = str(form.get("document_type") or "").strip()
    incoming = _incoming(form.get("file"), constraint.max_bytes)
    if not document_type or incoming is None:
        return _render_documents(
            request, services, viewer, error="Please choose a document type and file", status_code=400
        )
    try:
        store_certificate(
            services.backend,
            token=viewer.token,
            user_id=viewer.user.id,
            document_type=document_type,
            file=incoming,
            constraint=constraint,
            now=clock.now(),
        )
    except UploadRejected as exc:
        return _render_documents(request, services, viewer, error=str(exc), status_code=400)
    except ServiceError as exc:
        logger.error("Error uploading file: %s", exc)
        return _render_documents(
            request, services, viewer, error="Error uploading file. Please try again.", status_code=502
        )
    return RedirectResponse(url="/documents?notice=uploaded", status_code=303)


@router.post("/documents/certificates/{document_id}/rename")
def documents_rename_certificate(
    document_id: str,
    request: Request,
    name: str = Form(""),
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
):
    viewer = gate.resolve(session_id)
    try:
        renamed = pages.rename_certificate(services.backend, viewer, document_id, name)
    except ServiceError as exc:
        logger.error("Error renaming document: %s", exc)
        return _render_documents(
            request, services, viewer, error="Error renaming document. Please try again.", status_code=502
        )
    if not renamed:
        return _render_documents(request, services, viewer, error="Document name is required", status_code=400)
    return RedirectResponse(url="/documents?notice=renamed", status_code=303)


@router.post("/documents/certificates/{document_id}/delete")
def documents_delete_certificate(
    document_id: str,
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
):
    viewer = gate.resolve(session_id)
    try:
        document = pages.get_certificate(services.backend, viewer, document_id)
        if document is not None:
            delete_certificate(services.backend, token=viewer.token, document=document)
    except ServiceError as exc:
        logger.error("Error deleting document: %s", exc)
        return _render_documents(
            request, services, viewer, error="Error deleting document. Please try again.", status_code=502
        )
    return RedirectResponse(url="/documents?notice=deleted", status_code=303)


# reports and notifications


@router.get("/reports", response_class=HTMLResponse)
def reports_page(
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    viewer = gate.resolve(session_id)
    return templates.TemplateResponse(request, "reports.html", _shell(request, services, viewer, "reports"))


@router.get("/notifications", response_class=HTMLResponse)
def notifications_page(
    request: Request,
    notice: str | None = None,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    viewer = gate.resolve(session_id)
    notifications, load_error = [], ""
    try:
        notifications = pages.list_notifications(services.backend, viewer)
    except ServiceError as exc:
        logger.error("Error fetching notifications: %s", exc)
        load_error = exc.user_message
    context = _shell(
        request,
        services,
        viewer,
        "notifications",
        notifications=notifications,
        load_error=load_error,
        notice=_notice(notice),
    )
    return templates.TemplateResponse(request, "notifications.html", context)


@router.post("/notifications/{notification_id}/read")
def notifications_mark_read(
    notification_id: str,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
):
    viewer = gate.resolve(session_id)
    try:
        pages.mark_notification_read(services.backend, viewer, notification_id)
    except ServiceError as exc:
        logger.error("Error marking notification as read: %s", exc)
        return RedirectResponse(url="/notifications", status_code=303)
    return RedirectResponse(url="/notifications?notice=read", status_code=303)


# settings


def _render_settings(
    request: Request,
    services: Services,
    viewer: Viewer,
    *,
    edit: str | None = None,
    notice: str = "",
    error: str = "",
    status_code: int = 200,
) -> HTMLResponse:
    profile, load_error = None, ""
    try:
        profile = pages.load_profile_row(services.backend, viewer)
    except ServiceError as exc:
        logger.error("Error fetching profile: %s", exc)
        load_error = "Failed to load profile data"
    context = _shell(
        request,
        services,
        viewer,
        "settings",
        profile=profile,
        load_error=load_error,
        edit=edit if edit in pages.SETTINGS_SECTIONS else None,
        notice=notice,
        error=error,
        github=pages.load_github_integration(services.backend, viewer),
        github_connect_url=services.github.authorize_url(viewer.user.id, "/settings") if services.github.enabled else None,
        catalog=catalog,
    )
    return templates.TemplateResponse(request, "settings.html", context, status_code=status_code)


@router.get("/settings", response_class=HTMLResponse)
def settings_page(
    request: Request,
    edit: str | None = None,
    notice: str | None = None,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
) -> HTMLResponse:
    viewer = gate.resolve(session_id)
    return _render_settings(request, services, viewer, edit=edit, notice=_notice(notice))


def _settings_profile(services: Services, viewer: Viewer):
    profile = pages.load_profile_row(services.backend, viewer)
    if profile is None:
        raise RedirectRequired("/onboarding")
    return profile


@router.post("/settings/skills/add")
def settings_add_skill(
    request: Request,
    skill: str = Form(""),
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
    clock: Clock = Depends(get_clock),
):
    viewer = gate.resolve(session_id)
    try:
        profile = _settings_profile(services, viewer)
        pages.add_profile_skill(services.backend, viewer, profile, skill, clock.now())
    except ServiceError as exc:
        logger.error("Error saving profile: %s", exc)
        return _render_settings(
            request, services, viewer, edit="skills", error="Failed to save profile. Please try again.", status_code=502
        )
    return RedirectResponse(url="/settings?edit=skills", status_code=303)


@router.post("/settings/skills/{index}/remove")
def settings_remove_skill(
    index: int,
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
    clock: Clock = Depends(get_clock),
):
    viewer = gate.resolve(session_id)
    try:
        profile = _settings_profile(services, viewer)
        pages.remove_profile_skill(services.backend, viewer, profile, index, clock.now())
    except ServiceError as exc:
        logger.error("Error saving profile: %s", exc)
        return _render_settings(
            request, services, viewer, edit="skills", error="Failed to save profile. Please try again.", status_code=502
        )
    return RedirectResponse(url="/settings?edit=skills", status_code=303)


@router.post("/settings/{section}")
def settings_save(
    section: str,
    request: Request,
    session_id: str | None = Depends(get_session_id),
    form: FormData = Depends(read_form),
    gate: RouteGate = Depends(get_gate),
    services: Services = Depends(get_services),
    clock: Clock = Depends(get_clock),
):
    viewer = gate.resolve(session_id)
    if section not in pages.SETTINGS_SECTIONS:
        return Response(status_code=404)
    try:
        profile = _settings_profile(services, viewer)
        pages.save_profile(services.backend, viewer, pages.section_values(section, profile, form), clock.now())
    except ServiceError as exc:
        logger.error("Error saving profile: %s", exc)
        return _render_settings(
            request, services, viewer, edit=section, error="Failed to save profile. Please try again.", status_code=502
        )
    return RedirectResponse(url="/settings?notice=saved", status_code=303)


# blocked


@router.get("/blocked", response_class=HTMLResponse)
def blocked_page(
    request: Request,
    session_id: str | None = Depends(get_session_id),
    gate: RouteGate = Depends(get_gate),
) -> HTMLResponse:
    viewer = gate.resolve(session_id, require_onboarded=False, allow_blocked=True)
    if viewer.profile is None or not viewer.profile.is_blocked:
        raise RedirectRequired(DASHBOARD_URL)
    return templates.TemplateResponse(
        request,
        "blocked.html",
        {"email": viewer.user.email, "reason": viewer.profile.blocked_reason},
    )
