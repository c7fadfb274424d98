"""Repository setup wizard."""

from onboarding.constants import SETUP_FAILED, SETUP_QUIT, SETUP_SUCCESS

__all__ = ["SETUP_SUCCESS", "SETUP_QUIT", "SETUP_FAILED"]
