"""
Project-wide constants for the invoice extractor
"""  # noqa: D200, D212, D415

# ==============================================================================
# Extraction Service
# ==============================================================================

DEFAULT_API_URL = "https://api.koncile.ai"

UPLOAD_PATH = "/v1/upload_file/"  # trailing slash is required by the service
TASK_RESULTS_PATH = "/v1/fetch_tasks_results/"
TEMPLATE_PATH = "/v1/fetch_template/"

# Pre-registered extraction templates per invoice category
DEFAULT_TEMPLATES = {
    "electricity": "18982",
    "gas": "18983",
    "water": "18984",
}

# ==============================================================================
# Retry, Polling and Timeouts
# ==============================================================================

MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0  # seconds

POLL_INTERVAL = 2.0  # seconds
MAX_POLL_ATTEMPTS = 30

UPLOAD_TIMEOUT = 300.0  # seconds, large scans can take minutes
REQUEST_TIMEOUT = 120.0  # seconds
PROBE_TIMEOUT = 10.0  # seconds

# ==============================================================================
# Field Normalization
# ==============================================================================

DEFAULT_CONFIDENCE = 0.9

# ==============================================================================
# Upload Validation
# ==============================================================================

_MB = 1024 * 1024

MAX_UPLOAD_SIZE = 10 * _MB

ALLOWED_EXTENSIONS = (".pdf", ".jpg", ".jpeg", ".png", ".xlsx", ".xls")
ALLOWED_CONTENT_TYPES = (
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
)
