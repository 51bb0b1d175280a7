import os
from typing import List

class Settings:
    def _split_csv(self, raw: str, *, default: List[str]) -> List[str]:
        parts = [p.strip() for p in (raw or "").split(",")]
        return [p for p in parts if p] or default

    def _env_int(self, name: str, default: int) -> int:
        raw = (os.getenv(name) or "").strip()
        if not raw:
            return default
        try:
            return int(raw)
        except ValueError:
            return default

    def __init__(self) -> None:
        self.env = os.getenv('APP_ENV', 'local')
        # Remote POS REST API that owns catalog, taxes, vendors and inventory units.
        self.pos_api_url = (os.getenv('POS_API_URL') or 'http://localhost:5000').strip().rstrip('/')
        self.pos_api_token = (os.getenv('POS_API_TOKEN') or '').strip()
        self.pos_api_timeout_s = self._env_int("POS_API_TIMEOUT_S", 15)
        if self.pos_api_timeout_s <= 0:
            self.pos_api_timeout_s = 15
        # Comma-separated list of allowed CORS origins for the intake UI.
        self.cors_origins = self._split_csv(
            os.getenv("CORS_ORIGINS", "").strip(),
            default=["http://localhost:3000", "http://127.0.0.1:3000"],
        )
        self.session_limit = self._env_int("INTAKE_SESSION_LIMIT", 500)
        self.api_version = os.getenv("APP_VERSION", "0.1.0").strip() or "0.1.0"

    @property
    def is_dev(self) -> bool:
        return self.env in {"local", "dev"}

settings = Settings()
