import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-key")
DEBUG = os.getenv("DEBUG", "True") == "True"

ALLOWED_HOSTS = ["*"]

# Posts, evaluations and accounts live on the forum's relays; this
# project only computes on data handed to it, so no database is set up.
INSTALLED_APPS = [
    "deliberation",
]

LANGUAGE_CODE = "ja"
TIME_ZONE = "Asia/Tokyo"
USE_I18N = True
USE_TZ = True

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{levelname}] {asctime} {name}: {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO" if DEBUG else "WARNING",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "deliberation": {
            "handlers": ["console"],
            "level": os.getenv("DELIBERATION_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# Consensus analysis
# Minimum data before an analysis is attempted
CONSENSUS_MIN_EVALUATIONS = int(os.getenv("CONSENSUS_MIN_EVALUATIONS", "5"))
CONSENSUS_MIN_POSTS = int(os.getenv("CONSENSUS_MIN_POSTS", "2"))
CONSENSUS_MIN_PARTICIPANTS = int(os.getenv("CONSENSUS_MIN_PARTICIPANTS", "2"))
CONSENSUS_MIN_TOPICS = int(os.getenv("CONSENSUS_MIN_TOPICS", "2"))

# Result sizes
CONSENSUS_TOP_CONSENSUS = int(os.getenv("CONSENSUS_TOP_CONSENSUS", "10"))
CONSENSUS_TOP_REPRESENTATIVE = int(os.getenv("CONSENSUS_TOP_REPRESENTATIVE", "5"))

# Engine parameters
CONSENSUS_N_COMPONENTS = int(os.getenv("CONSENSUS_N_COMPONENTS", "2"))
CONSENSUS_MAX_CLUSTERS = int(os.getenv("CONSENSUS_MAX_CLUSTERS", "10"))
CONSENSUS_Z_THRESHOLD = float(os.getenv("CONSENSUS_Z_THRESHOLD", "1.28"))
CONSENSUS_FDR_ALPHA = (
    float(os.getenv("CONSENSUS_FDR_ALPHA"))
    if os.getenv("CONSENSUS_FDR_ALPHA")
    else None
)
CONSENSUS_RANDOM_STATE = int(os.getenv("CONSENSUS_RANDOM_STATE", "42"))

# Celery Configuration
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
