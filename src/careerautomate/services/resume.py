from __future__ import annotations

from careerautomate.services.http import ServiceClient
from careerautomate.types import GeneratedResume, ResumeOptions

ALLOWED_TEMPLATES = ("modern", "classic")
TEMPLATE_NAMES = {"modern": "Modern Minimal", "classic": "Classic Corporate"}


class ResumeServiceClient(ServiceClient):
    def options(self, token: str) -> ResumeOptions:
        data = self.request_json("GET", "/v1/resumes/options", token=token, fallback="Failed to load resume options")
        options = ResumeOptions.model_validate(data if isinstance(data, dict) else {})
        options.templates = [template for template in options.templates if template.id in ALLOWED_TEMPLATES]
        return options

    def generate(self, token: str, *, genre: str, template_id: str) -> GeneratedResume:
        data = self.request_json(
            "POST",
            "/v1/resumes/generate",
            token=token,
            json={"genre": genre, "template_id": template_id},
            fallback="Failed to generate resume",
        )
        return GeneratedResume.model_validate(data if isinstance(data, dict) else {})
