import os

SECRET_KEY = "test-secret"
JWT_SECRET = "test-jwt-secret"
TOKEN_EXPIRE_DAYS = 1

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "salestrack_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
SUPERADMIN_EMAIL = "superadmin@example.com"
SUPERADMIN_PASSWORD = "superadmin123"

ENABLE_DATE_SWEEP = False
DATE_SWEEP_HOUR = 0
DATE_SWEEP_MINUTE = 5
