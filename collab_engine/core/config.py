"""
Runtime configuration.

All settings are read from environment variables (optionally loaded from a
`.env` file) once, at import time, following the same convention as the
MongoDB client module.

Environment variables:
    - MONGODB_URI:          MongoDB connection string (default: mongodb://localhost:27017)
    - MONGODB_DB:           Database name (default: collab_engine)
    - JWT_SECRET:           Secret used to verify bearer tokens
    - JWT_ALGORITHM:        Signing algorithm of bearer tokens (default: HS256)
    - NOTIFICATION_URL:     Endpoint of the notification dispatcher; empty disables dispatch
    - NOTIFICATION_TIMEOUT: Timeout in seconds for one dispatch (default: 5.0)
    - WRITE_ATTEMPTS:       Optimistic write attempts per operation (default: 3)
    - LOG_LEVEL:            Root log level (default: INFO)
    - CORS_ORIGINS:         Comma-separated list of allowed origins (default: *)
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

MONGO_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGODB_DB", "collab_engine")

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-every-deployment-0000")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

NOTIFICATION_URL = os.getenv("NOTIFICATION_URL", "")
NOTIFICATION_TIMEOUT = float(os.getenv("NOTIFICATION_TIMEOUT", "5.0"))

WRITE_ATTEMPTS = int(os.getenv("WRITE_ATTEMPTS", "3"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
