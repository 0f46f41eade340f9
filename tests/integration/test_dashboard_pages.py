from fastapi.testclient import TestClient

from careerautomate.api.app import create_app

from conftest import completed_profile, user_id_for

USER_ID = user_id_for("asha@example.com")


def seed(services, table: str, *rows: dict) -> None:
    services.backend.tables.setdefault(table, []).extend({"user_id": USER_ID, **row} for row in rows)


def test_dashboard_counts_fail_independently(client, services, sign_in) -> None:
    sign_in()
    seed(services, "projects", {"id": "p1"}, {"id": "p2"})
    seed(services, "notifications", {"id": "n1", "is_read": False}, {"id": "n2", "is_read": True})
    services.backend.fail_on.add("count:certificate_documents")

    page = client.get("/dashboard")
    assert page.status_code == 200
    assert "Welcome back, Asha Rao!" in page.text
    assert 'data-stat="projects"' in page.text
    assert "count failed" in page.text
    assert 'id="unread-count">1<' in page.text


def test_projects_list_and_github_actions(client, services, sign_in) -> None:
    sign_in()
    seed(
        services,
        "projects",
        {"id": "p1", "repo_name": "old-repo", "created_at": "2026-01-01T00:00:00Z"},
        {"id": "p2", "repo_name": "new-repo", "created_at": "2026-06-01T00:00:00Z"},
    )
    seed(services, "projects", {"id": "other", "repo_name": "not-mine"})
    services.backend.tables["projects"][-1]["user_id"] = "someone-else"

    page = client.get("/projects")
    assert page.text.index("new-repo") < page.text.index("old-repo")
    assert "not-mine" not in page.text

    assert client.post("/projects/sync", follow_redirects=False).headers["location"] == "/projects?notice=synced"
    client.post("/projects/p1/describe")
    client.post("/projects/p1/detect-genre")
    assert services.github.calls == [("sync", ""), ("describe", "p1"), ("detect-genre", "p1")]


def test_project_video_upload_checks_type(client, services, sign_in) -> None:
    sign_in()
    seed(services, "projects", {"id": "p1", "repo_name": "repo"})

    rejected = client.post("/projects/p1/video", files={"video": ("intro.gif", b"gif", "image/gif")})
    assert rejected.status_code == 400
    assert "Allowed formats: WEBM, MP4" in rejected.text

    response = client.post(
        "/projects/p1/video",
        files={"video": ("intro.webm", b"webm", "video/webm")},
        follow_redirects=False,
    )
    assert response.headers["location"] == "/projects?notice=video"
    assert ("project-videos", f"{USER_ID}/p1.webm") in services.backend.objects
    assert services.backend.tables["projects"][0]["video_status"] == "Video Uploaded"


def test_automations_pause_blocks_ai_actions_but_not_sync(settings, services, clock) -> None:
    services.backend.tables["system_controls"] = [{"control_key": "automations_stopped", "control_value": True}]
    services.auth.users["asha@example.com"] = "secret123"
    services.onboarding.profiles["token-asha@example.com"] = completed_profile()

    with TestClient(create_app(settings=settings, services=services, clock=clock)) as client:
        client.post("/login", data={"email": "asha@example.com", "password": "secret123"})

        described = client.post("/projects/p1/describe")
        assert described.status_code == 502
        assert "temporarily paused" in described.text

        documents = client.get("/documents")
        assert "temporarily paused" in documents.text
        assert client.post("/documents/resumes/generate", data={"role": "Backend Developer", "template_id": "modern"}).status_code == 502
        assert services.resume.generated == []

        client.post("/projects/sync")
        assert services.github.calls == [("sync", "")]


def test_resume_generation_and_listing(client, services, sign_in) -> None:
    sign_in()
    seed(
        services,
        "documents",
        {"id": "r1", "title": "Older", "document_type": "Resume", "updated_at": "2026-01-01"},
        {"id": "r2", "title": "Newer", "document_type": "Resume", "updated_at": "2026-05-01"},
        {"id": "c1", "title": "Cover letter", "document_type": "Cover Letter", "updated_at": "2026-06-01"},
    )

    page = client.get("/documents")
    assert page.text.index("Newer") < page.text.index("Older")
    assert "Cover letter" not in page.text
    assert "Backend Developer" in page.text

    invalid = client.post("/documents/resumes/generate", data={"role": "Backend Developer", "template_id": "retro"})
    assert invalid.status_code == 400
    assert "Please select a role and template" in invalid.text

    generated = client.post("/documents/resumes/generate", data={"role": "Backend Developer", "template_id": "modern"})
    assert generated.status_code == 200
    assert "http://files.test/resume.pdf" in generated.text
    assert services.resume.generated == [{"genre": "Backend Developer", "template_id": "modern"}]

    client.post("/documents/resumes/r1/delete")
    assert [row["id"] for row in services.backend.tables["documents"]] == ["r2", "c1"]


def test_resume_generation_disabled_without_service(client, services, sign_in) -> None:
    sign_in()
    services.resume.enabled = False
    assert "Resume generation is not configured" in client.get("/documents").text


def test_certificate_upload_rename_delete(client, services, sign_in) -> None:
    sign_in()
    too_big = client.post(
        "/documents/certificates",
        data={"document_type": "Degree"},
        files={"file": ("degree.pdf", b"x" * (5 * 1024 * 1024 + 1), "application/pdf")},
    )
    assert too_big.status_code == 400
    assert "File size must be less than 5MB" in too_big.text
    assert services.backend.objects == {}

    uploaded = client.post(
        "/documents/certificates",
        data={"document_type": "Degree"},
        files={"file": ("degree.pdf", b"%PDF", "application/pdf")},
        follow_redirects=False,
    )
    assert uploaded.headers["location"] == "/documents?notice=uploaded"
    row = services.backend.tables["certificate_documents"][0]
    assert row["document_name"] == "degree"
    assert row["user_id"] == USER_ID

    assert client.post(f"/documents/certificates/{row['id']}/rename", data={"name": " "}).status_code == 400
    client.post(f"/documents/certificates/{row['id']}/rename", data={"name": "B.Tech Degree"})
    assert row["document_name"] == "B.Tech Degree"

    deleted = client.post(f"/documents/certificates/{row['id']}/delete", follow_redirects=False)
    assert deleted.headers["location"] == "/documents?notice=deleted"
    assert services.backend.tables["certificate_documents"] == []
    assert services.backend.objects == {}


def test_notifications_mark_read(client, services, sign_in) -> None:
    sign_in()
    seed(services, "notifications", {"id": "n1", "title": "Resume ready", "is_read": False})
    assert "Resume ready" in client.get("/notifications").text

    response = client.post("/notifications/n1/read", follow_redirects=False)
    assert response.headers["location"] == "/notifications?notice=read"
    assert services.backend.tables["notifications"][0]["is_read"] is True
    assert 'id="unread-count"' not in client.get("/notifications").text


def test_settings_sections_save_through_profile_rows(client, services, clock, sign_in) -> None:
    sign_in()
    services.backend.tables["profiles"] = [
        {"id": USER_ID, "full_name": "Asha Rao", "skills": ["Python"], "career_preferences": {"min_target_lpa": 10}}
    ]
    profile = services.backend.tables["profiles"][0]

    assert 'action="/settings/personal"' in client.get("/settings?edit=personal").text
    saved = client.post(
        "/settings/personal",
        data={"full_name": "Asha R", "address": "12 MG Road, Bengaluru"},
        follow_redirects=False,
    )
    assert saved.headers["location"] == "/settings?notice=saved"
    assert profile["full_name"] == "Asha R"
    assert profile["secondary_email"] is None
    assert profile["updated_at"] == clock.now().isoformat()

    client.post("/settings/skills/add", data={"skill": "Python"})
    client.post("/settings/skills/add", data={"skill": "Rust"})
    assert profile["skills"] == ["Python", "Rust"]
    client.post("/settings/skills/0/remove")
    assert profile["skills"] == ["Rust"]

    client.post(
        "/settings/career",
        data={"roles_targeted": "Backend Developer", "min_target_lpa": "18", "preferred_locations": "Pune, Remote"},
    )
    assert profile["career_preferences"]["min_target_lpa"] == 18
    assert profile["career_preferences"]["preferred_locations"] == ["Pune", "Remote"]

    assert client.post("/settings/unknown", data={}).status_code == 404


def test_settings_save_failure_keeps_form_open(client, services, sign_in) -> None:
    sign_in()
    services.backend.tables["profiles"] = [{"id": USER_ID, "full_name": "Asha Rao"}]
    services.backend.fail_on.add("update:profiles")
    response = client.post("/settings/personal", data={"full_name": "Asha R"})
    assert response.status_code == 502
    assert "Failed to save profile. Please try again." in response.text
    assert 'action="/settings/personal"' in response.text
