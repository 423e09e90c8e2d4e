from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Attendance"

    data_dir: Path = Field(default_factory=lambda: Path.cwd() / "data")
    logs_dir: Path = Field(default_factory=lambda: Path.cwd() / "logs")

    database_path: Path = Field(default_factory=lambda: Path.cwd() / "data" / "attendance.db")

    host: str = "0.0.0.0"
    port: int = 3000

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Built client bundle (e.g. client/dist); served with SPA fallback when present
    frontend_dist: Optional[Path] = None

    # strict: PENDING->ACTIVE->ENDED only | monotonic: forward, skips allowed | permissive: anything
    status_transitions: Literal["strict", "monotonic", "permissive"] = "strict"

    min_signature_bytes: int = 64
    max_signature_bytes: int = 10 * 1024 * 1024
    min_signature_side: int = 16
    max_signature_pixels: int = 4096 * 4096

    export_embed_signatures: bool = True

    class Config:
        env_prefix = "ATTENDANCE_"
        case_sensitive = False

    def ensure_dirs(self) -> None:
        for d in [self.data_dir, self.logs_dir, self.database_path.parent]:
            d.mkdir(parents=True, exist_ok=True)
