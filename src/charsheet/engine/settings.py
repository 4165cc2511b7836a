from __future__ import annotations
from pathlib import Path
import os
from pydantic import BaseModel
from typing import Literal, Optional

DEFAULT_SETTINGS_PATH = Path.home() / ".charsheet" / "settings.json"

class Settings(BaseModel):
    evaluator: Literal["literal", "expression"] = "literal"
    log_level: str = "WARNING"
    explain: bool = False

def settings_path() -> Path:
    env = os.environ.get("CHARSHEET_SETTINGS")
    return Path(env) if env else DEFAULT_SETTINGS_PATH

def load_settings(path: Optional[Path] = None) -> Settings:
    path = path or settings_path()
    if path.exists():
        return Settings.model_validate_json(path.read_text(encoding="utf-8"))
    s = Settings()
    save_settings(s, path)
    return s

def save_settings(s: Settings, path: Optional[Path] = None) -> None:
    path = path or settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(s.model_dump_json(indent=2), encoding="utf-8")
