"""Exit codes for the setup wizard process."""

SETUP_SUCCESS = 0  # Repository created or connected and verified
SETUP_QUIT = 1  # User cancelled (Ctrl+C or Esc)
SETUP_FAILED = 2  # Last connection attempt failed and the user quit
