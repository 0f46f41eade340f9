from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from careerautomate.config import Settings
from careerautomate.core.wizard import WizardState
from careerautomate.errors import ServiceError, UploadRejected
from careerautomate.services.backend import BackendClient, storage_path_from_url
from careerautomate.types import CertificateDocument, UploadSlot

logger = logging.getLogger(__name__)

PROFILE_PHOTOS_BUCKET = "profile-photos"
GOVERNMENT_IDS_BUCKET = "government-ids"
CERTIFICATES_BUCKET = "certificates-documents"
PROJECT_VIDEOS_BUCKET = "project-videos"

UPLOAD_FAILED_MESSAGE = "File upload failed. Please try again."

JPEG_PNG = frozenset({"image/jpeg", "image/png"})
JPEG_PNG_PDF = JPEG_PNG | {"application/pdf"}
VIDEO_TYPES = frozenset({"video/webm", "video/mp4"})
EXTENSIONS_BY_TYPE = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "application/pdf": "pdf",
    "video/webm": "webm",
    "video/mp4": "mp4",
}


@dataclass(slots=True, frozen=True)
class FileConstraint:
    bucket: str
    max_bytes: int
    content_types: frozenset[str]
    label: str

    @property
    def max_megabytes(self) -> int:
        return self.max_bytes // (1024 * 1024)

    def check(self, *, file_name: str, content_type: str, size: int) -> None:
        """Raise UploadRejected before any byte leaves the server."""
        if not file_name or size == 0:
            raise UploadRejected("Please choose a file to upload")
        if size > self.max_bytes:
            raise UploadRejected(f"File size must be less than {self.max_megabytes}MB")
        base_type = content_type.split(";")[0].strip().lower()
        if base_type not in self.content_types:
            raise UploadRejected(f"Unsupported file type. Allowed formats: {self.label}")


def upload_constraints(settings: Settings) -> dict[str, FileConstraint]:
    return {
        "profile_photo": FileConstraint(
            PROFILE_PHOTOS_BUCKET, settings.max_identity_upload_bytes, JPEG_PNG, "JPG, PNG"
        ),
        "govt_id": FileConstraint(
            GOVERNMENT_IDS_BUCKET, settings.max_identity_upload_bytes, JPEG_PNG_PDF, "JPG, PNG, PDF"
        ),
        "certificate": FileConstraint(
            CERTIFICATES_BUCKET, settings.max_certificate_upload_bytes, JPEG_PNG_PDF, "PDF, JPG, PNG"
        ),
        "project_video": FileConstraint(
            PROJECT_VIDEOS_BUCKET, settings.max_video_upload_bytes, VIDEO_TYPES, "WEBM, MP4"
        ),
    }


@dataclass(slots=True)
class IncomingFile:
    file_name: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        stem, dot, suffix = self.file_name.rpartition(".")
        if dot and stem and suffix:
            return suffix.lower()
        base_type = self.content_type.split(";")[0].strip().lower()
        return EXTENSIONS_BY_TYPE.get(base_type, "bin")

    @property
    def stem(self) -> str:
        return self.file_name.rsplit(".", 1)[0] if "." in self.file_name else self.file_name


def identity_object_path(user_id: str, field: str, file: IncomingFile) -> str:
    # fixed name per user so re-uploads overwrite instead of piling up
    name = "avatar" if field == "profile_photo" else "govt_id"
    return f"{user_id}/{name}.{file.extension}"


# per-field upload status on the wizard draft


def _with_slot(state: WizardState, field: str, slot: UploadSlot) -> WizardState:
    uploads = {**state.uploads, field: slot}
    return state.model_copy(update={"uploads": uploads})


def mark_pending(state: WizardState, field: str, file_name: str) -> WizardState:
    state = _with_slot(state, field, UploadSlot(state="pending", file_name=file_name))
    return state.model_copy(update={"error": ""})


def mark_done(state: WizardState, field: str, url: str, file_name: str) -> WizardState:
    state = _with_slot(state, field, UploadSlot(state="done", url=url, file_name=file_name))
    data = state.data.model_copy(update={f"{field}_url": url})
    return state.model_copy(update={"data": data})


def mark_failed(state: WizardState, field: str, message: str) -> WizardState:
    # a previously uploaded URL stays valid on the draft
    previous = state.uploads.get(field) or UploadSlot()
    slot = UploadSlot(state="failed", url=previous.url, file_name=previous.file_name, error=message)
    state = _with_slot(state, field, slot)
    return state.model_copy(update={"error": message})


def store_identity_file(
    backend: BackendClient,
    *,
    token: str,
    user_id: str,
    field: str,
    file: IncomingFile,
    constraint: FileConstraint,
) -> str:
    constraint.check(file_name=file.file_name, content_type=file.content_type, size=file.size)
    path = identity_object_path(user_id, field, file)
    url = backend.upload(
        constraint.bucket,
        path,
        file.content,
        token=token,
        content_type=file.content_type,
        upsert=True,
    )
    logger.info("Stored %s user_id=%s path=%s", field, user_id, path)
    return url


def store_certificate(
    backend: BackendClient,
    *,
    token: str,
    user_id: str,
    document_type: str,
    file: IncomingFile,
    constraint: FileConstraint,
    now: datetime,
) -> CertificateDocument:
    constraint.check(file_name=file.file_name, content_type=file.content_type, size=file.size)
    path = f"{user_id}/{int(now.timestamp() * 1000)}.{file.extension}"
    url = backend.upload(constraint.bucket, path, file.content, token=token, content_type=file.content_type)
    try:
        row = backend.insert(
            "certificate_documents",
            token,
            {
                "user_id": user_id,
                "document_name": file.stem,
                "document_type": document_type,
                "file_url": url,
                "file_name": file.file_name,
                "file_size": file.size,
                "file_type": file.content_type,
            },
        )
    except ServiceError:
        # no row references the object, drop it
        _remove_quietly(backend, constraint.bucket, path, token)
        raise
    return CertificateDocument.model_validate({"id": "", **row})


def delete_certificate(backend: BackendClient, *, token: str, document: CertificateDocument) -> None:
    if document.file_url:
        _remove_quietly(backend, CERTIFICATES_BUCKET, storage_path_from_url(document.file_url), token)
    backend.delete("certificate_documents", token, filters={"id": document.id})


def store_project_video(
    backend: BackendClient,
    *,
    token: str,
    user_id: str,
    project_id: str,
    file: IncomingFile,
    constraint: FileConstraint,
) -> str:
    constraint.check(file_name=file.file_name, content_type=file.content_type, size=file.size)
    path = f"{user_id}/{project_id}.{file.extension}"
    url = backend.upload(
        constraint.bucket,
        path,
        file.content,
        token=token,
        content_type=file.content_type,
        upsert=True,
    )
    backend.update(
        "projects",
        token,
        {"video_url": url, "video_status": "Video Uploaded"},
        filters={"id": project_id, "user_id": user_id},
    )
    logger.info("Stored project video user_id=%s project_id=%s", user_id, project_id)
    return url


def _remove_quietly(backend: BackendClient, bucket: str, path: str, token: str) -> None:
    try:
        backend.remove(bucket, [path], token=token)
    except ServiceError as exc:
        logger.warning("Could not remove %s/%s: %s", bucket, path, exc)
