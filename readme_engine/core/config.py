"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    VALIDATE_INTERFACES      — Run the capability contract check on register (default: true)
    ALLOW_DUPLICATES         — Admit the same analyzer name twice (default: false)
    FAIL_ON_ERROR            — Strict admission; reject non-compliant analyzers (default: false)
    REGISTRATION_TIMEOUT_MS  — Max time a single registration may take (default: 5000)
    ENABLE_REGISTRY_LOGGING  — Emit structured registry events (default: true)
    ANALYZER_TIMEOUT_SECONDS — Per-analyzer bound during a run (default: 30)
    EVENT_HISTORY_LIMIT      — Size of the in-memory diagnostics history (default: 500)
    ANALYZER_WEIGHTS_FILE    — Optional YAML file overriding reliability weights
    ANALYZER_PLUGINS         — Comma-separated module.path:ClassName analyzers loaded at startup
    LOG_LEVEL                — Root log level (default: INFO)
    LOG_DIR                  — Directory for the dated log file; empty disables it (default: logs)

Strict vs Lenient Admission:
    With FAIL_ON_ERROR unset, a buggy plugin is recorded as a failed
    registration and admitted with warnings so that one bad analyzer never
    takes the whole run down. Set FAIL_ON_ERROR=true in CI to surface
    contract violations as hard failures.
"""
import os
from dotenv import load_dotenv

from readme_engine.models.registration import RegistrationOptions

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


VALIDATE_INTERFACES = _env_bool("VALIDATE_INTERFACES", True)
ALLOW_DUPLICATES = _env_bool("ALLOW_DUPLICATES", False)
FAIL_ON_ERROR = _env_bool("FAIL_ON_ERROR", False)
REGISTRATION_TIMEOUT_MS = int(os.getenv("REGISTRATION_TIMEOUT_MS", 5000))
ENABLE_REGISTRY_LOGGING = _env_bool("ENABLE_REGISTRY_LOGGING", True)

# Per-analyzer execution bound in seconds
ANALYZER_TIMEOUT_SECONDS = float(os.getenv("ANALYZER_TIMEOUT_SECONDS", 30))

# Diagnostics history cap
EVENT_HISTORY_LIMIT = int(os.getenv("EVENT_HISTORY_LIMIT", 500))

ANALYZER_WEIGHTS_FILE = os.getenv("ANALYZER_WEIGHTS_FILE")

# Comma-separated "module.path:ClassName" analyzers registered at startup
ANALYZER_PLUGINS = os.getenv("ANALYZER_PLUGINS", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")


def default_registration_options() -> RegistrationOptions:
    """Build explicit registry options from the environment."""
    return RegistrationOptions(
        validate_interfaces=VALIDATE_INTERFACES,
        allow_duplicates=ALLOW_DUPLICATES,
        fail_on_error=FAIL_ON_ERROR,
        registration_timeout=REGISTRATION_TIMEOUT_MS,
        enable_logging=ENABLE_REGISTRY_LOGGING,
    )
