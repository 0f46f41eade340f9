from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

GradeType = Literal["percentage", "cgpa"]
UploadState = Literal["idle", "pending", "done", "failed"]
TimeoutPhase = Literal["active", "warning", "expired"]
VerificationStatus = Literal["pending", "approved", "rejected"]


def _stringify(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


class ProfileSection(BaseModel):
    """Nested profile record; a stored `null` falls back to the field default."""

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: item for key, item in value.items() if item is not None}
        return value


class AuthTokens(BaseModel):
    access_token: str
    refresh_token: str | None = None


class User(BaseModel):
    id: str
    email: str = ""


class Education(ProfileSection):
    degree_type: str = ""
    degree_name: str = ""
    institution: str = ""
    grade_type: GradeType = "percentage"
    obtained_marks: str | None = None
    total_marks: str | None = None
    obtained_cgpa: str | None = None
    max_cgpa: str | None = None
    year_of_completion: str = ""
    percentage: str | None = None

    @field_validator(
        "obtained_marks",
        "total_marks",
        "obtained_cgpa",
        "max_cgpa",
        "year_of_completion",
        "percentage",
        mode="before",
    )
    @classmethod
    def coerce_numbers(cls, value: Any) -> Any:
        return _stringify(value)


class Experience(ProfileSection):
    job_title: str = ""
    company_name: str = ""
    location: str = ""
    employment_type: str = "full-time"
    start_date: str = ""
    end_date: str = ""
    is_current: bool = False
    description: str = ""
    skills_used: list[str] = Field(default_factory=list)


class Achievement(ProfileSection):
    title: str = ""
    issuer: str = ""
    date: str = ""
    description: str = ""


class Certification(ProfileSection):
    name: str = ""
    issuing_organization: str = ""
    issue_date: str = ""
    expiry_date: str = ""
    credential_id: str = ""
    credential_url: str = ""


class CareerPreferences(ProfileSection):
    roles_targeted: list[str] = Field(default_factory=list)
    min_target_lpa: int | None = None
    preferred_locations: list[str] = Field(default_factory=list)
    work_preference: list[str] = Field(default_factory=list)
    other_preferences: list[str] = Field(default_factory=list)


class ApiKeys(ProfileSection):
    gemini_ai_key: str | None = None
    linkedin_api_key: str | None = None
    naukri_api_key: str | None = None
    indeed_api_key: str | None = None
    gmail_api_key: str | None = None


class Profile(BaseModel):
    id: str | None = None
    full_name: str | None = None
    date_of_birth: str | None = None
    phone_number: str | None = None
    secondary_email: str | None = None
    address: str | None = None
    profile_photo_url: str | None = None
    govt_id_url: str | None = None
    linkedin_url: str | None = None
    github_username: str | None = None
    summary: str | None = None
    skills: list[str] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    experience: list[Experience] = Field(default_factory=list)
    achievements: list[Achievement] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    career_preferences: CareerPreferences = Field(default_factory=CareerPreferences)
    api_keys: ApiKeys = Field(default_factory=ApiKeys)
    onboarding_completed: bool = False
    is_blocked: bool = False
    blocked_reason: str | None = None

    @field_validator("skills", "education", "experience", "achievements", "certifications", mode="before")
    @classmethod
    def none_as_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("career_preferences", "api_keys", mode="before")
    @classmethod
    def none_as_empty_dict(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("onboarding_completed", "is_blocked", mode="before")
    @classmethod
    def none_as_false(cls, value: Any) -> Any:
        return False if value is None else value


class Project(BaseModel):
    id: str
    repo_name: str = ""
    description: str | None = None
    readme_text: str | None = None
    ai_description: str | None = None
    genres: list[str] = Field(default_factory=list)
    status: str = "New"
    video_url: str | None = None
    video_status: str = "No Video"
    created_at: str | None = None

    @field_validator("genres", mode="before")
    @classmethod
    def none_as_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def display_description(self) -> str:
        return self.ai_description or self.description or ""


class ResumeDocument(BaseModel):
    id: str
    title: str = ""
    role: str | None = None
    file_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    meta_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("meta_data", mode="before")
    @classmethod
    def none_as_empty_dict(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def template_id(self) -> str | None:
        return self.meta_data.get("template_id")


class CertificateDocument(BaseModel):
    id: str
    document_name: str = ""
    document_type: str = ""
    file_url: str = ""
    file_name: str = ""
    file_size: int | None = None
    verification_status: VerificationStatus = "pending"
    rejection_reason: str | None = None
    created_at: str | None = None


class ResumeTemplate(BaseModel):
    id: str
    name: str = ""
    has_photo: bool = False
    description: str = ""


class ResumeOptions(BaseModel):
    templates: list[ResumeTemplate] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)


class GeneratedResume(BaseModel):
    document_id: str | None = None
    pdf_url: str | None = None


class Notification(BaseModel):
    id: str
    title: str = ""
    message: str = ""
    type: str = "info"
    is_read: bool = False
    created_at: str | None = None


class GitHubIntegration(BaseModel):
    github_username: str | None = None
    is_active: bool = False


class SystemControlsSnapshot(BaseModel):
    emergency_stop: bool = False
    automations_stopped: bool = False
    loading: bool = True


class UploadSlot(BaseModel):
    state: UploadState = "idle"
    url: str = ""
    file_name: str = ""
    error: str = ""
