from datetime import datetime, timezone

import pytest

from careerautomate.config import Settings
from careerautomate.core.uploads import (
    CERTIFICATES_BUCKET,
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
from careerautomate.core.wizard import WizardState
from careerautomate.errors import ServiceError, UploadRejected

from conftest import FakeBackend

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
MB = 1024 * 1024


@pytest.fixture
def constraints():
    return upload_constraints(Settings())


def test_constraints_reject_before_upload(constraints) -> None:
    photo = constraints["profile_photo"]
    with pytest.raises(UploadRejected, match="Please choose a file to upload"):
        photo.check(file_name="", content_type="image/png", size=0)
    with pytest.raises(UploadRejected, match="File size must be less than 5MB"):
        photo.check(file_name="me.png", content_type="image/png", size=5 * MB + 1)
    with pytest.raises(UploadRejected, match="Allowed formats: JPG, PNG"):
        photo.check(file_name="me.pdf", content_type="application/pdf", size=10)
    constraints["govt_id"].check(file_name="id.pdf", content_type="application/pdf", size=10)
    constraints["project_video"].check(file_name="intro.webm", content_type="video/webm;codecs=vp9", size=10)


def test_identity_files_use_fixed_names(constraints) -> None:
    backend = FakeBackend()
    photo = IncomingFile("Me.PNG", "image/png", b"first")
    url = store_identity_file(
        backend, token="t", user_id="u1", field="profile_photo", file=photo, constraint=constraints["profile_photo"]
    )
    store_identity_file(
        backend,
        token="t",
        user_id="u1",
        field="profile_photo",
        file=IncomingFile("again.png", "image/png", b"second"),
        constraint=constraints["profile_photo"],
    )
    assert url.endswith("/profile-photos/u1/avatar.png")
    assert backend.objects[("profile-photos", "u1/avatar.png")] == b"second"


def test_extension_falls_back_to_content_type(constraints) -> None:
    assert IncomingFile("photo", "image/jpeg", b"x").extension == "jpg"
    assert IncomingFile("scan.", "application/pdf", b"x").extension == "pdf"
    assert IncomingFile(".hidden", "image/png", b"x").extension == "png"
    assert IncomingFile("clip", "video/mp4; codecs=avc1", b"x").extension == "mp4"

    backend = FakeBackend()
    store_identity_file(
        backend,
        token="t",
        user_id="u1",
        field="profile_photo",
        file=IncomingFile("photo", "image/png", b"img"),
        constraint=constraints["profile_photo"],
    )
    assert ("profile-photos", "u1/avatar.png") in backend.objects


def test_upload_slots_track_status() -> None:
    state = mark_pending(WizardState(error="old"), "govt_id", "id.pdf")
    assert state.uploading
    assert state.error == ""

    done = mark_done(state, "govt_id", "http://files.test/id.pdf", "id.pdf")
    assert not done.uploading
    assert done.data.govt_id_url == "http://files.test/id.pdf"

    failed = mark_failed(mark_pending(done, "govt_id", "new.pdf"), "govt_id", "File upload failed. Please try again.")
    assert failed.uploads["govt_id"].state == "failed"
    assert failed.data.govt_id_url == "http://files.test/id.pdf"
    assert failed.error == "File upload failed. Please try again."


def test_certificate_row_failure_removes_stored_object(constraints) -> None:
    backend = FakeBackend()
    backend.fail_on.add("insert")
    with pytest.raises(ServiceError):
        store_certificate(
            backend,
            token="t",
            user_id="u1",
            document_type="Degree",
            file=IncomingFile("degree.pdf", "application/pdf", b"%PDF"),
            constraint=constraints["certificate"],
            now=NOW,
        )
    assert backend.objects == {}
    assert ("remove", CERTIFICATES_BUCKET) in backend.calls


def test_certificate_round_trip(constraints) -> None:
    backend = FakeBackend()
    document = store_certificate(
        backend,
        token="t",
        user_id="u1",
        document_type="Degree",
        file=IncomingFile("degree.pdf", "application/pdf", b"%PDF"),
        constraint=constraints["certificate"],
        now=NOW,
    )
    assert document.document_name == "degree"
    assert document.verification_status == "pending"
    path = f"u1/{int(NOW.timestamp() * 1000)}.pdf"
    assert (CERTIFICATES_BUCKET, path) in backend.objects

    delete_certificate(backend, token="t", document=document)
    assert backend.objects == {}
    assert backend.tables["certificate_documents"] == []


def test_certificate_delete_survives_storage_errors(constraints) -> None:
    backend = FakeBackend()
    document = store_certificate(
        backend,
        token="t",
        user_id="u1",
        document_type="Degree",
        file=IncomingFile("degree.pdf", "application/pdf", b"%PDF"),
        constraint=constraints["certificate"],
        now=NOW,
    )
    backend.fail_on.add("remove")
    delete_certificate(backend, token="t", document=document)
    assert backend.tables["certificate_documents"] == []


def test_project_video_updates_the_project(constraints) -> None:
    backend = FakeBackend()
    backend.tables["projects"] = [{"id": "p1", "user_id": "u1", "video_status": "No Video"}]
    url = store_project_video(
        backend,
        token="t",
        user_id="u1",
        project_id="p1",
        file=IncomingFile("intro.mp4", "video/mp4", b"mp4"),
        constraint=constraints["project_video"],
    )
    project = backend.tables["projects"][0]
    assert project["video_url"] == url
    assert project["video_status"] == "Video Uploaded"
