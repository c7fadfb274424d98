"""Setup wizard steps."""

from onboarding.steps.config_step import run_config_step
from onboarding.steps.credential_step import run_credential_step
from onboarding.steps.provider_step import run_provider_step
from onboarding.steps.server_step import run_server_step
from onboarding.steps.verify_step import run_verify_step

__all__ = [
    "run_server_step",
    "run_provider_step",
    "run_config_step",
    "run_verify_step",
    "run_credential_step",
]
