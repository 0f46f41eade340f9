from careerautomate.core.wizard import Step, WizardState
from careerautomate.db.models import UISession
from careerautomate.db.repositories import Repository
from careerautomate.db.session import SessionLocal

from conftest import user_id_for

USER_ID = user_id_for("asha@example.com")

PERSONAL = {
    "step": "1",
    "full_name": "Asha Rao",
    "date_of_birth": "1998-04-12",
    "country_code": "+91",
    "phone_number": "98765 43210",
    "address": "12 MG Road, Bengaluru",
    "linkedin_url": "https://www.linkedin.com/in/asha",
    "github_username": "asha",
}


def post_step(client, data: dict, action: str, files: dict | None = None):
    response = client.post("/onboarding", data={**data, "action": action}, files=files, follow_redirects=False)
    assert response.status_code == 303
    return response


def current_page(client) -> str:
    page = client.get("/onboarding")
    assert page.status_code == 200
    return page.text


def test_onboarding_round_trip_completes_profile(client, services, sign_in) -> None:
    token = sign_in(profile=None)
    assert client.get("/dashboard", follow_redirects=False).headers["location"] == "/onboarding"
    assert "Step 1 of 6: Personal Details" in current_page(client)

    # required uploads block the first step
    post_step(client, PERSONAL, "next")
    assert "Profile Photo is required" in current_page(client)

    post_step(client, PERSONAL, "upload:profile_photo", files={"profile_photo": ("me.png", b"png", "image/png")})
    post_step(client, PERSONAL, "upload:govt_id", files={"govt_id": ("id.gif", b"gif", "image/gif")})
    page = current_page(client)
    assert "me.png uploaded" in page
    assert "Unsupported file type. Allowed formats: JPG, PNG, PDF" in page

    post_step(client, PERSONAL, "upload:govt_id", files={"govt_id": ("id.pdf", b"%PDF", "application/pdf")})
    assert ("profile-photos", f"{USER_ID}/avatar.png") in services.backend.objects
    assert ("government-ids", f"{USER_ID}/govt_id.pdf") in services.backend.objects

    post_step(client, PERSONAL, "next")
    assert "Step 2 of 6: Skills &amp; Academics" in current_page(client)

    skills_step = {"step": "2", "summary": "Backend engineer", "education-count": "0"}
    post_step(client, skills_step, "next")
    assert "At least one skill is required" in current_page(client)

    post_step(client, {**skills_step, "new_skill": "Python"}, "add_skill")
    post_step(client, {**skills_step, "skills": "Python"}, "add_education")
    page = current_page(client)
    assert 'name="skills" value="Python"' in page
    assert 'name="education-0-institution"' in page

    education = {
        **skills_step,
        "skills": "Python",
        "education-count": "1",
        "education-0-degree_type": "undergraduate",
        "education-0-institution": "IIT Madras",
        "education-0-grade_type": "percentage",
        "education-0-obtained_marks": "520",
        "education-0-total_marks": "500",
        "education-0-year_of_completion": "2020",
    }
    post_step(client, education, "next")
    assert "Education #1: Obtained Marks (520) cannot be greater than Total Marks (500)" in current_page(client)

    post_step(client, {**education, "education-0-obtained_marks": "450"}, "next")
    assert "Step 3 of 6: Career Questionnaire" in current_page(client)

    # going back keeps what was entered
    post_step(client, {"step": "3"}, "previous")
    assert 'value="IIT Madras"' in current_page(client)
    post_step(client, {**education, "education-0-obtained_marks": "450"}, "next")

    career = {
        "step": "3",
        "preferred_roles": "Backend Developer",
        "target_lpa": "12",
        "preferred_locations": "Bengaluru, Remote",
        "work_preference": "remote",
    }
    post_step(client, career, "next")
    page = current_page(client)
    assert "Step 4 of 6: Connect Accounts" in page
    assert "http://sync.test/v1/github/authorize?user_id=" in page

    post_step(client, {"step": "4"}, "next")
    post_step(client, {"step": "5", "gemini_ai_key": "short"}, "next")
    assert "Please enter a valid Gemini AI Key" in current_page(client)
    post_step(client, {"step": "5", "gemini_ai_key": "AIza" + "x" * 30}, "next")
    page = current_page(client)
    assert "Step 6 of 6: Review &amp; Finish" in page
    assert "IIT Madras" in page

    finished = post_step(client, {"step": "6"}, "finish")
    assert finished.headers["location"] == "/dashboard"

    payload = services.onboarding.submitted[0]
    assert payload["phone_number"] == "+91 9876543210"
    assert payload["education"][0]["percentage"] == "90.00"
    assert payload["career_preferences"]["roles_targeted"] == ["Backend Developer"]
    assert payload["career_preferences"]["min_target_lpa"] == 12
    assert payload["profile_photo_url"].endswith(f"/profile-photos/{USER_ID}/avatar.png")
    assert payload["onboarding_completed"] is True

    # the stored profile now passes the gate
    assert services.onboarding.profiles[token].onboarding_completed
    assert client.get("/dashboard").status_code == 200
    assert client.get("/onboarding", follow_redirects=False).headers["location"] == "/dashboard"


def test_failed_submission_stays_on_review(client, services, sign_in) -> None:
    sign_in(profile=None)
    with SessionLocal() as db:
        session_id = db.query(UISession).one().id
        Repository(db).save_wizard_state(session_id, WizardState(step=Step.REVIEW).model_dump(mode="json"))

    services.onboarding.fail_update = True
    post_step(client, {"step": "6"}, "finish")
    page = current_page(client)
    assert "Error submitting form. Please try again." in page
    assert "Step 6 of 6" in page


def test_upload_failure_keeps_wizard_usable(client, services, sign_in) -> None:
    sign_in(profile=None)
    services.backend.fail_on.add("upload")
    post_step(client, PERSONAL, "upload:profile_photo", files={"profile_photo": ("me.png", b"png", "image/png")})
    page = current_page(client)
    assert "File upload failed. Please try again." in page
    assert 'value="Asha Rao"' in page
    assert "disabled" not in page.split('value="next"')[1].split(">")[0]
