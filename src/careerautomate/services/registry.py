from __future__ import annotations

from dataclasses import dataclass

from careerautomate.config import Settings
from careerautomate.services.auth import AuthServiceClient
from careerautomate.services.backend import BackendClient
from careerautomate.services.github_sync import GitHubSyncClient
from careerautomate.services.http import ServiceConfig
from careerautomate.services.onboarding import OnboardingServiceClient
from careerautomate.services.resume import ResumeServiceClient


@dataclass(slots=True)
class Services:
    auth: AuthServiceClient
    backend: BackendClient
    onboarding: OnboardingServiceClient
    resume: ResumeServiceClient
    github: GitHubSyncClient


def build_services(settings: Settings) -> Services:
    timeout = settings.http_timeout_sec
    return Services(
        auth=AuthServiceClient(ServiceConfig(name="auth", base_url=settings.auth_service_url, timeout_sec=timeout)),
        backend=BackendClient(
            ServiceConfig(
                name="backend",
                base_url=settings.supabase_url,
                timeout_sec=timeout,
                api_key=settings.supabase_anon_key,
            )
        ),
        onboarding=OnboardingServiceClient(
            ServiceConfig(name="onboarding", base_url=settings.onboarding_api_url, timeout_sec=timeout)
        ),
        resume=ResumeServiceClient(
            ServiceConfig(name="resume", base_url=settings.resume_service_url, timeout_sec=timeout)
        ),
        github=GitHubSyncClient(
            ServiceConfig(name="github-sync", base_url=settings.github_sync_service_url, timeout_sec=timeout)
        ),
    )
