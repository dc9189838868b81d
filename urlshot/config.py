# config.py
#
# Runtime settings, read once from the environment.
#
#    export URLSHOT_LOG_LEVEL=DEBUG
#    export URLSHOT_CHROMIUM_EXECUTABLE=/usr/bin/chromium

import os
import logging

# --- Logging ---
LOG_LEVEL = os.environ.get("URLSHOT_LOG_LEVEL", "INFO").upper()

# --- Browser Launch ---
# '--no-sandbox' and friends keep Chromium working inside serverless/container environments.
DEFAULT_CHROMIUM_ARGS = "--single-process --no-sandbox --disable-setuid-sandbox"
CHROMIUM_ARGS = os.environ.get("URLSHOT_CHROMIUM_ARGS", DEFAULT_CHROMIUM_ARGS).split()
CHROMIUM_EXECUTABLE = os.environ.get("URLSHOT_CHROMIUM_EXECUTABLE") or None
HEADLESS = os.environ.get("URLSHOT_HEADLESS", "true").lower() not in ("0", "false", "no")

# --- Capture ---
NAVIGATION_TIMEOUT_MS = 8500
JPEG_QUALITY = 80


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Attach a stream handler to the root logger unless the host already did."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
