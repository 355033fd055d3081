"""
Academy configuration
Validated settings read once from the environment - fails fast on missing vars
"""

import os
from typing import List, Mapping, Optional

PASSWORD_STRATEGIES = ("random", "deterministic")


class Config:
    """Validated configuration"""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        self._env = os.environ if env is None else env

        # Primary store (courses, registrations, promo codes, admins)
        self.MONGODB_URI = self._require_env("MONGODB_URI")
        self.MONGODB_DB = self._get("MONGODB_DB", "academy")

        # Remote store (learner accounts) - optional, provisioning records an error when unset
        self.REMOTE_MONGODB_URI = self._get("REMOTE_MONGODB_URI")
        self.REMOTE_MONGODB_DB = self._get("REMOTE_MONGODB_DB", "users")
        self.REMOTE_SERVER_SELECTION_TIMEOUT_MS = self._get_int("REMOTE_SERVER_SELECTION_TIMEOUT_MS", 5000)

        # Admin auth
        self.JWT_SECRET = self._require_env("JWT_SECRET")
        self.JWT_ALGORITHM = "HS256"
        self.JWT_EXPIRE_HOURS = self._get_int("JWT_EXPIRE_HOURS", 24 * 7)
        self.JWT_ISSUER = "academy"
        self.JWT_AUDIENCE = "academy-admin"
        self.COOKIE_NAME = self._get("COOKIE_NAME", "token")
        self.COOKIE_SECURE = self._get("COOKIE_SECURE", "false").lower() == "true"

        # Email
        self.SENDGRID_API_KEY = self._get("SENDGRID_API_KEY")
        self.SENDGRID_WEBHOOK_TOKEN = self._get("SENDGRID_WEBHOOK_TOKEN")
        self.EMAIL_FROM = self._get("EMAIL_FROM", "no-reply@rhinogeeks.com")
        self.CONTACT_TO = self._get("CONTACT_TO", self.EMAIL_FROM)

        # Learner provisioning
        self.PASSWORD_STRATEGY = self._get("PASSWORD_STRATEGY", "random").lower()
        if self.PASSWORD_STRATEGY not in PASSWORD_STRATEGIES:
            raise RuntimeError(
                f"FATAL: PASSWORD_STRATEGY must be one of {PASSWORD_STRATEGIES}, got {self.PASSWORD_STRATEGY!r}"
            )
        self.PASSWORD_SUFFIX = self._get("PASSWORD_SUFFIX", "@rhinogeeks")

        # HTTP
        self.CORS_ORIGINS = self._parse_list(self._get("CORS_ORIGINS", "*"))
        self.LOG_LEVEL = self._get("LOG_LEVEL", "INFO").upper()

    def _get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._env.get(key)
        if value is None or value == "":
            return default
        return value

    def _get_int(self, key: str, default: int) -> int:
        raw = self._get(key)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            raise RuntimeError(f"FATAL: {key} must be an integer, got {raw!r}")

    def _require_env(self, key: str) -> str:
        """Get required environment variable or crash"""
        value = self._get(key)
        if not value:
            raise RuntimeError(f"FATAL: Missing required environment variable: {key}")
        return value

    @staticmethod
    def _parse_list(raw: str) -> List[str]:
        return [item.strip() for item in raw.split(",") if item.strip()]


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide config, built on first use"""
    global _config
    if _config is None:
        _config = Config()
    return _config
