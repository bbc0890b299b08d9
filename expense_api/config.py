"""Environment driven settings for the expense tracking API."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Mapping, Optional, Tuple

ENV_PREFIX: Final[str] = "EXPENSE_API_"
DEFAULT_SQLITE_PATH: Final[Path] = Path(__file__).with_name("expenses.db")
TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


def _split_origins(raw: str) -> Tuple[str, ...]:
    origins = tuple(item.strip() for item in raw.split(",") if item.strip())
    return origins or ("*",)


@dataclass(frozen=True)
class Settings:
    """Runtime configuration of the API process."""

    database_url: str = f"sqlite:///{DEFAULT_SQLITE_PATH}"
    log_level: str = "INFO"
    json_logs: bool = False
    log_file: str = str(Path("artifacts") / "logs" / "expense_api.log")
    cors_origins: Tuple[str, ...] = field(default=("*",))
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``EXPENSE_API_*`` variables, falling back to defaults."""

        env = os.environ if environ is None else environ
        defaults = cls()

        def read(name: str, default: str) -> str:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value and value.strip() else default

        return cls(
            database_url=read("DATABASE_URL", defaults.database_url),
            log_level=read("LOG_LEVEL", defaults.log_level).upper(),
            json_logs=read("JSON_LOGS", "").lower() in TRUTHY,
            log_file=read("LOG_FILE", defaults.log_file),
            cors_origins=_split_origins(read("CORS_ORIGINS", "*")),
            host=read("HOST", defaults.host),
            port=int(read("PORT", str(defaults.port))),
        )


__all__ = ["Settings", "ENV_PREFIX"]
