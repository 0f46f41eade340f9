from __future__ import annotations

import math
import re
from datetime import date
from enum import IntEnum
from typing import Any, Protocol

from pydantic import BaseModel, Field

from careerautomate.core.auth_flow import is_valid_email
from careerautomate.core.catalog import DEGREE_NAMES
from careerautomate.types import Achievement, Certification, Experience, GradeType, UploadSlot


class Step(IntEnum):
    PERSONAL_DETAILS = 1
    SKILLS_ACADEMICS = 2
    CAREER_QUESTIONNAIRE = 3
    CONNECT_ACCOUNTS = 4
    API_KEYS = 5
    REVIEW = 6


STEP_TITLES = {
    Step.PERSONAL_DETAILS: "Personal Details",
    Step.SKILLS_ACADEMICS: "Skills & Academics",
    Step.CAREER_QUESTIONNAIRE: "Career Questionnaire",
    Step.CONNECT_ACCOUNTS: "Connect Accounts",
    Step.API_KEYS: "API Keys Setup",
    Step.REVIEW: "Review & Finish",
}

UPLOAD_FIELDS = ("profile_photo", "govt_id")
UPLOAD_PENDING_MESSAGE = "Please wait for the upload to finish"

MIN_AGE = 13
MAX_AGE = 100
MIN_GEMINI_KEY_LENGTH = 20


class FormLike(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def getlist(self, key: str) -> list[Any]: ...


class EducationEntry(BaseModel):
    degree_type: str = ""
    degree_name: str = ""
    institution: str = ""
    grade_type: GradeType = "percentage"
    obtained_marks: str = ""
    total_marks: str = ""
    obtained_cgpa: str = ""
    max_cgpa: str = "10"
    year_of_completion: str = ""


class ApiKeyDraft(BaseModel):
    gemini_ai_key: str = ""
    linkedin_api_key: str = ""
    naukri_api_key: str = ""
    indeed_api_key: str = ""
    gmail_api_key: str = ""


class OnboardingData(BaseModel):
    full_name: str = ""
    date_of_birth: str = ""
    country_code: str = "+91"
    phone_number: str = ""
    secondary_email: str = ""
    address: str = ""
    profile_photo_url: str = ""
    govt_id_url: str = ""
    linkedin_url: str = ""
    github_username: str = ""
    summary: str = ""
    skills: list[str] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    experience: list[Experience] = Field(default_factory=list)
    achievements: list[Achievement] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    preferred_roles: list[str] = Field(default_factory=list)
    target_lpa: str = ""
    preferred_locations: list[str] = Field(default_factory=list)
    work_preference: list[str] = Field(default_factory=list)
    other_preferences: list[str] = Field(default_factory=list)
    api_keys: ApiKeyDraft = Field(default_factory=ApiKeyDraft)


def _default_uploads() -> dict[str, UploadSlot]:
    return {name: UploadSlot() for name in UPLOAD_FIELDS}


class WizardState(BaseModel):
    step: Step = Step.PERSONAL_DETAILS
    data: OnboardingData = Field(default_factory=OnboardingData)
    error: str = ""
    uploads: dict[str, UploadSlot] = Field(default_factory=_default_uploads)

    @property
    def title(self) -> str:
        return STEP_TITLES[self.step]

    @property
    def progress(self) -> int:
        return round(self.step / len(Step) * 100)

    @property
    def is_last(self) -> bool:
        return self.step == Step.REVIEW

    @property
    def uploading(self) -> bool:
        return any(slot.state == "pending" for slot in self.uploads.values())


# number parsing with the browser's lenient semantics: blank or junk is "no value"


def _parse_float(value: str) -> float | None:
    try:
        number = float((value or "").strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _parse_int(value: str) -> int | None:
    match = re.match(r"\s*[-+]?\d+", value or "")
    return int(match.group(0)) if match else None


def _fmt(number: float) -> str:
    return str(int(number)) if number.is_integer() else str(number)


def _years_ago(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return today.replace(year=today.year - years, day=28)


def is_valid_date_of_birth(value: str, today: date | None = None) -> bool:
    today = today or date.today()
    try:
        born = date.fromisoformat(value)
    except ValueError:
        return False
    if born > today:
        return False
    if born > _years_ago(today, MIN_AGE):
        return False
    return born >= _years_ago(today, MAX_AGE)


def is_valid_linkedin_url(value: str) -> bool:
    return "linkedin.com/" in value


def validate_personal_details(data: OnboardingData, today: date | None = None) -> str | None:
    full_name = data.full_name.strip()
    if not full_name:
        return "Full Name is required"
    if len(full_name) < 2:
        return "Full Name must be at least 2 characters"
    if not data.date_of_birth:
        return "Date of Birth is required"
    if not is_valid_date_of_birth(data.date_of_birth, today):
        return "Invalid Date of Birth. You must be between 13 and 100 years old."
    phone = data.phone_number.strip()
    if not phone:
        return "Phone Number is required"
    if data.country_code == "+91" and len(phone) != 10:
        return "Phone number must be exactly 10 digits for India (+91)"
    if len(phone) < 10:
        return "Please enter a valid phone number (at least 10 digits)"
    if data.secondary_email and not is_valid_email(data.secondary_email):
        return "Please enter a valid secondary email address"
    address = data.address.strip()
    if not address:
        return "Address is required"
    if len(address) < 10:
        return "Please enter a complete address (at least 10 characters)"
    if not data.profile_photo_url:
        return "Profile Photo is required"
    if not data.govt_id_url:
        return "Government Photo ID is required"
    if not data.linkedin_url.strip():
        return "LinkedIn Profile URL is required"
    if not is_valid_linkedin_url(data.linkedin_url):
        return "Please enter a valid LinkedIn URL (must contain linkedin.com/)"
    if not data.github_username.strip():
        return "GitHub Username is required"
    return None


def _validate_education(index: int, entry: EducationEntry) -> str | None:
    label = f"Education #{index}"
    if entry.grade_type == "cgpa":
        obtained = _parse_float(entry.obtained_cgpa or "0")
        maximum = _parse_float(entry.max_cgpa or "10")
        if obtained is None or maximum is None:
            return f"{label}: CGPA must be a valid number"
        if obtained > maximum:
            return f"{label}: CGPA Obtained ({_fmt(obtained)}) cannot be greater than Maximum CGPA ({_fmt(maximum)})"
        if obtained < 0:
            return f"{label}: CGPA cannot be negative"
        return None

    obtained = _parse_float(entry.obtained_marks or "0")
    total = _parse_float(entry.total_marks or "100")
    if obtained is None or total is None:
        return f"{label}: Marks must be valid numbers"
    if obtained > total:
        return f"{label}: Obtained Marks ({_fmt(obtained)}) cannot be greater than Total Marks ({_fmt(total)})"
    if obtained < 0 or total < 0:
        return f"{label}: Marks cannot be negative"
    return None


def validate_skills_academics(data: OnboardingData) -> str | None:
    if not data.skills:
        return "At least one skill is required"
    for index, entry in enumerate(data.education, start=1):
        message = _validate_education(index, entry)
        if message:
            return message
    return None


def validate_career(data: OnboardingData) -> str | None:
    if not data.preferred_roles:
        return "Please select at least one preferred job role"
    if not data.target_lpa.strip():
        return "Please enter your minimum target LPA"
    lpa = _parse_int(data.target_lpa)
    if lpa is None or lpa < 1 or lpa > 200:
        return "Target LPA must be between 1 and 200 lakhs"
    if not data.preferred_locations:
        return "Please enter at least one preferred location"
    return None


def validate_api_keys(data: OnboardingData) -> str | None:
    key = data.api_keys.gemini_ai_key
    if not key.strip():
        return "Gemini AI Key is required for AI features"
    if len(key) < MIN_GEMINI_KEY_LENGTH:
        return "Please enter a valid Gemini AI Key"
    return None


def validate(step: Step, data: OnboardingData, today: date | None = None) -> str | None:
    """First blocking problem for ``step``, or None when it may advance."""
    if step == Step.PERSONAL_DETAILS:
        return validate_personal_details(data, today)
    if step == Step.SKILLS_ACADEMICS:
        return validate_skills_academics(data)
    if step == Step.CAREER_QUESTIONNAIRE:
        return validate_career(data)
    if step == Step.API_KEYS:
        return validate_api_keys(data)
    # connect accounts is optional and review has nothing to check
    return None


def next_step(state: WizardState, today: date | None = None) -> WizardState:
    if state.uploading:
        return state.model_copy(update={"error": UPLOAD_PENDING_MESSAGE})
    message = validate(state.step, state.data, today)
    if message:
        return state.model_copy(update={"error": message})
    step = Step(min(state.step + 1, Step.REVIEW))
    return state.model_copy(update={"step": step, "error": ""})


def previous_step(state: WizardState) -> WizardState:
    step = Step(max(state.step - 1, Step.PERSONAL_DETAILS))
    return state.model_copy(update={"step": step, "error": ""})


# form merging


def _text(form: FormLike, key: str, default: str = "") -> str:
    value = form.get(key)
    return default if value is None else str(value).strip()


def _values(form: FormLike, key: str) -> list[str]:
    return [str(value).strip() for value in form.getlist(key) if str(value).strip()]


def _comma_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _count(form: FormLike, prefix: str) -> int:
    return max(0, _parse_int(_text(form, f"{prefix}-count")) or 0)


def _merge_education(form: FormLike, previous: list[EducationEntry]) -> list[EducationEntry]:
    entries = []
    for index in range(_count(form, "education")):
        key = f"education-{index}"
        entry = EducationEntry(
            degree_type=_text(form, f"{key}-degree_type"),
            degree_name=_text(form, f"{key}-degree_name"),
            institution=_text(form, f"{key}-institution"),
            grade_type="cgpa" if _text(form, f"{key}-grade_type") == "cgpa" else "percentage",
            obtained_marks=_text(form, f"{key}-obtained_marks"),
            total_marks=_text(form, f"{key}-total_marks"),
            obtained_cgpa=_text(form, f"{key}-obtained_cgpa"),
            max_cgpa=_text(form, f"{key}-max_cgpa", "10") or "10",
            year_of_completion=_text(form, f"{key}-year_of_completion"),
        )
        before = previous[index] if index < len(previous) else None
        if before is not None and before.degree_type != entry.degree_type:
            if entry.degree_name not in DEGREE_NAMES.get(entry.degree_type, []):
                entry.degree_name = ""
        if before is not None and before.grade_type != entry.grade_type:
            entry.obtained_marks = entry.total_marks = entry.obtained_cgpa = ""
            entry.max_cgpa = "10"
        entries.append(entry)
    return entries


def _merge_experience(form: FormLike) -> list[Experience]:
    entries = []
    for index in range(_count(form, "experience")):
        key = f"experience-{index}"
        entries.append(
            Experience(
                job_title=_text(form, f"{key}-job_title"),
                company_name=_text(form, f"{key}-company_name"),
                location=_text(form, f"{key}-location"),
                employment_type=_text(form, f"{key}-employment_type", "full-time") or "full-time",
                start_date=_text(form, f"{key}-start_date"),
                end_date=_text(form, f"{key}-end_date"),
                is_current=form.get(f"{key}-is_current") is not None,
                description=_text(form, f"{key}-description"),
                skills_used=_comma_list(_text(form, f"{key}-skills_used")),
            )
        )
    return entries


def _merge_simple(form: FormLike, prefix: str, model: type[BaseModel]) -> list[Any]:
    return [
        model(**{name: _text(form, f"{prefix}-{index}-{name}") for name in model.model_fields})
        for index in range(_count(form, prefix))
    ]


def merge_step_form(step: Step, data: OnboardingData, form: FormLike) -> OnboardingData:
    """Fold one step's posted fields into the draft; other steps are untouched."""
    update: dict[str, Any] = {}
    if step == Step.PERSONAL_DETAILS:
        update = {
            "full_name": _text(form, "full_name"),
            "date_of_birth": _text(form, "date_of_birth"),
            "country_code": _text(form, "country_code", "+91") or "+91",
            "phone_number": re.sub(r"\D", "", _text(form, "phone_number")),
            "secondary_email": _text(form, "secondary_email"),
            "address": _text(form, "address"),
            "linkedin_url": _text(form, "linkedin_url"),
            "github_username": _text(form, "github_username"),
        }
    elif step == Step.SKILLS_ACADEMICS:
        update = {
            "summary": _text(form, "summary"),
            "skills": list(dict.fromkeys(_values(form, "skills"))),
            "education": _merge_education(form, data.education),
            "experience": _merge_experience(form),
            "achievements": _merge_simple(form, "achievements", Achievement),
            "certifications": _merge_simple(form, "certifications", Certification),
        }
    elif step == Step.CAREER_QUESTIONNAIRE:
        update = {
            "preferred_roles": _values(form, "preferred_roles"),
            "target_lpa": _text(form, "target_lpa"),
            "preferred_locations": _comma_list(_text(form, "preferred_locations")),
            "work_preference": _values(form, "work_preference"),
            "other_preferences": _values(form, "other_preferences"),
        }
    elif step == Step.API_KEYS:
        update = {
            "api_keys": ApiKeyDraft(**{name: _text(form, name) for name in ApiKeyDraft.model_fields}),
        }
    return data.model_copy(update=update)


COLLECTIONS = {
    "education": EducationEntry,
    "experience": Experience,
    "achievements": Achievement,
    "certifications": Certification,
}


def add_skill(data: OnboardingData, skill: str) -> OnboardingData:
    skill = skill.strip()
    if not skill or skill in data.skills:
        return data
    return data.model_copy(update={"skills": [*data.skills, skill]})


def apply_action(data: OnboardingData, action: str, form: FormLike | None = None) -> OnboardingData:
    """Run an in-step editing action such as ``add_education`` or ``remove_skill:2``."""
    name, _, raw_index = action.partition(":")
    verb, _, target = name.partition("_")

    if target == "skill":
        if verb == "add":
            return add_skill(data, _text(form, "new_skill") if form is not None else "")
        if verb == "remove":
            index = _parse_int(raw_index)
            skills = [skill for i, skill in enumerate(data.skills) if i != index]
            return data.model_copy(update={"skills": skills})

    model = COLLECTIONS.get(target)
    if model is None or verb not in ("add", "remove"):
        raise ValueError(f"Unknown wizard action: {action}")

    items = list(getattr(data, target))
    if verb == "add":
        items.append(model())
    else:
        index = _parse_int(raw_index)
        items = [item for i, item in enumerate(items) if i != index]
    return data.model_copy(update={target: items})


# submission


def _or_none(value: str) -> str | None:
    return value or None


def _percentage(entry: EducationEntry) -> str | None:
    if entry.grade_type != "percentage" or not entry.obtained_marks or not entry.total_marks:
        return None
    obtained = _parse_float(entry.obtained_marks)
    total = _parse_float(entry.total_marks)
    if obtained is None or not total:
        return None
    return f"{obtained / total * 100:.2f}"


def _education_payload(entry: EducationEntry) -> dict[str, Any]:
    is_percentage = entry.grade_type == "percentage"
    return {
        "degree_type": entry.degree_type,
        "degree_name": entry.degree_name,
        "institution": entry.institution,
        "grade_type": entry.grade_type,
        "obtained_marks": entry.obtained_marks if is_percentage else None,
        "total_marks": entry.total_marks if is_percentage else None,
        "obtained_cgpa": None if is_percentage else entry.obtained_cgpa,
        "max_cgpa": None if is_percentage else entry.max_cgpa,
        "year_of_completion": entry.year_of_completion,
        "percentage": _percentage(entry),
    }


def _experience_payload(entry: Experience) -> dict[str, Any]:
    payload = entry.model_dump()
    if entry.is_current:
        payload["end_date"] = "Present"
    return payload


def build_payload(data: OnboardingData) -> dict[str, Any]:
    """Aggregate every step into the profile service's update shape."""
    return {
        "full_name": data.full_name,
        "date_of_birth": data.date_of_birth,
        "phone_number": f"{data.country_code} {data.phone_number}" if data.phone_number else None,
        "secondary_email": _or_none(data.secondary_email),
        "address": data.address,
        "profile_photo_url": _or_none(data.profile_photo_url),
        "govt_id_url": _or_none(data.govt_id_url),
        "linkedin_url": _or_none(data.linkedin_url),
        "github_username": _or_none(data.github_username),
        "summary": _or_none(data.summary),
        "skills": list(data.skills),
        "education": [_education_payload(entry) for entry in data.education],
        "experience": [_experience_payload(entry) for entry in data.experience],
        "achievements": [entry.model_dump() for entry in data.achievements],
        "certifications": [entry.model_dump() for entry in data.certifications],
        "career_preferences": {
            "roles_targeted": list(data.preferred_roles),
            "min_target_lpa": _parse_int(data.target_lpa),
            "preferred_locations": list(data.preferred_locations),
            "work_preference": list(data.work_preference),
            "other_preferences": list(data.other_preferences),
        },
        "api_keys": {name: _or_none(value) for name, value in data.api_keys.model_dump().items()},
        "onboarding_completed": True,
    }
