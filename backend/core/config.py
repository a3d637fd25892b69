import os
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)


def _env_flag(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


QA_MODE = _env_flag("QA_MODE")

# Turn-taking timings (milliseconds)
SILENCE_DEBOUNCE_MS = max(250, int(os.getenv("SILENCE_DEBOUNCE_MS", "3000")))
CAPTURE_RESTART_DELAY_MS = max(0, int(os.getenv("CAPTURE_RESTART_DELAY_MS", "200")))
CAPTURE_BACKOFF_FLOOR_MS = max(50, int(os.getenv("CAPTURE_BACKOFF_FLOOR_MS", "300")))
CAPTURE_BACKOFF_CAP_MS = max(CAPTURE_BACKOFF_FLOOR_MS, int(os.getenv("CAPTURE_BACKOFF_CAP_MS", "5000")))
COMPLETION_EXIT_DELAY_MS = max(0, int(os.getenv("COMPLETION_EXIT_DELAY_MS", "1500")))

# Evaluation backend
EVALUATION_URL = str(os.getenv("EVALUATION_URL") or "http://127.0.0.1:9000/api/evaluate").strip()
EVALUATION_TIMEOUT_SEC = max(2.0, float(os.getenv("EVALUATION_TIMEOUT_SEC", "20")))
OPENING_PROMPT = str(os.getenv("OPENING_PROMPT") or "start the interview").strip()

# Session admission
ADMISSION_URL = str(os.getenv("ADMISSION_URL") or "http://127.0.0.1:9000/api/admit").strip()
ADMISSION_TIMEOUT_SEC = max(1.0, float(os.getenv("ADMISSION_TIMEOUT_SEC", "6")))

# Browser bridge
PLAYBACK_TIMEOUT_SEC = max(5.0, float(os.getenv("PLAYBACK_TIMEOUT_SEC", "120")))
WS_MAX_TEXT_BYTES = max(1024, int(os.getenv("WS_MAX_TEXT_BYTES", "65536")))

# Session housekeeping
SESSION_CLEANUP_TTL_SEC = max(60, int(os.getenv("SESSION_CLEANUP_TTL_SEC", "1800")))
SESSION_CLEANUP_INTERVAL_SEC = max(30, int(os.getenv("SESSION_CLEANUP_INTERVAL_SEC", "120")))
