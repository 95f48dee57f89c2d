import os
from dotenv import load_dotenv

load_dotenv()

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").lower()
STORAGE_BACKENDS = ("memory", "local", "s3")
STORAGE_KEY = os.getenv("STORAGE_KEY", "toptop_analytics_data")

DATA_DIR = os.getenv("DATA_DIR", "data")

ANALYTICS_BUCKET = os.getenv("ANALYTICS_BUCKET")
ANALYTICS_PREFIX = os.getenv("ANALYTICS_PREFIX", "analytics/")
AWS_REGION = os.getenv("AWS_REGION")
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")

TOP_VIDEOS_LIMIT = int(os.getenv("TOP_VIDEOS_LIMIT", "10"))
RECENT_INTERACTIONS_LIMIT = int(os.getenv("RECENT_INTERACTIONS_LIMIT", "50"))

FLASK_HOST = os.getenv("FLASK_HOST", "127.0.0.1")
FLASK_PORT = int(os.getenv("FLASK_PORT", "4000"))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def validate_config():
    if STORAGE_BACKEND not in STORAGE_BACKENDS:
        raise ValueError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}")
    if STORAGE_BACKEND == "s3" and not ANALYTICS_BUCKET:
        raise ValueError("ANALYTICS_BUCKET environment variable is required for the s3 backend")
