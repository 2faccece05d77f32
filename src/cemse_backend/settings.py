import os
import threading
from dotenv import load_dotenv

load_dotenv()

def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ["true", "1", "yes", "on"]

class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE","development")
        self.SITE_URL = os.environ.get("SITE_URL","http://localhost:8000")

        # Database
        self.DATABASE_URL = os.environ.get("DATABASE_URL",None)
        self.POSTGRES_URL = os.environ.get("POSTGRES_URL","localhost:5432")
        self.POSTGRES_USER = os.environ.get("POSTGRES_USER","postgres")
        self.POSTGRES_PASSWORD = os.environ.get("POSTGRES_PASSWORD","postgres")
        self.POSTGRES_DB = os.environ.get("POSTGRES_DB","cemse")

        # Sessions
        self.SESSION_BACKEND = os.environ.get("SESSION_BACKEND","redis").lower()
        self.SESSION_TTL = int(os.environ.get("SESSION_TTL", 60 * 60 * 8))
        self.SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME","cemse_session")
        self.SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", "false")

        # Passwords
        self.BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", 12))

        # Seed account
        self.SEED_SUPER_ADMIN_EMAIL = os.environ.get("SEED_SUPER_ADMIN_EMAIL","admin@admin.com")
        self.SEED_SUPER_ADMIN_PASSWORD = os.environ.get("SEED_SUPER_ADMIN_PASSWORD",None)
        self.SEED_SUPER_ADMIN_NAME = os.environ.get("SEED_SUPER_ADMIN_NAME","Super Admin")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_URL}/{self.POSTGRES_DB}"

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
