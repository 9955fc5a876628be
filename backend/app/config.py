import os
from pathlib import Path
from typing import Optional

class Settings:
    def __init__(self):
        self.BASE_DIR = Path(__file__).resolve().parent.parent.parent

        # Loaded once; nothing mutates these after startup
        self.settings = self.load_settings()

    def load_settings(self) -> dict:
        return {
            "app_name": "Swipebooru",
            "port": int(os.getenv("PORT", 3000)),
            "debug": os.getenv("SWIPEBOORU_DEBUG", "").lower() in ("1", "true", "yes"),
            "static_dir": os.getenv("STATIC_DIR") or str(self.BASE_DIR / "public"),
            "e621": {
                "base_url": (os.getenv("E621_BASE_URL") or "https://e621.net").rstrip("/"),
                "login": os.getenv("E621_LOGIN") or None,
                "api_key": os.getenv("E621_API_KEY") or None,
                "timeout": float(os.getenv("UPSTREAM_TIMEOUT") or 15),
                "avatar_timeout": float(os.getenv("AVATAR_TIMEOUT") or 6),
            },
        }

    @property
    def APP_NAME(self) -> str:
        return self.settings["app_name"]

    @property
    def PORT(self) -> int:
        return self.settings["port"]

    @property
    def DEBUG(self) -> bool:
        return self.settings["debug"]

    @property
    def STATIC_DIR(self) -> Path:
        return Path(self.settings["static_dir"])

    @property
    def E621_BASE_URL(self) -> str:
        return self.settings["e621"]["base_url"]

    @property
    def E621_LOGIN(self) -> Optional[str]:
        return self.settings["e621"]["login"]

    @property
    def E621_API_KEY(self) -> Optional[str]:
        return self.settings["e621"]["api_key"]

    @property
    def UPSTREAM_TIMEOUT(self) -> float:
        return self.settings["e621"]["timeout"]

    @property
    def AVATAR_TIMEOUT(self) -> float:
        return self.settings["e621"]["avatar_timeout"]

settings = Settings()
