from __future__ import annotations
from pathlib import Path
from typing import Iterable, Tuple
import json
import yaml
from pydantic import TypeAdapter, ValidationError
from .exceptions import SheetFormatError
from .sheet import CharacterSheet

SheetAdapter = TypeAdapter(CharacterSheet)

SHEET_EXTS: Tuple[str, ...] = (".json", ".yaml", ".yml")

def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in (".yaml", ".yml")

def _load_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    try:
        if _is_yaml(path):
            return yaml.safe_load(text) or {}
        return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise SheetFormatError(f"{path}: {e}") from e

def iter_sheet_files(root: Path, exts: Tuple[str, ...] = SHEET_EXTS) -> Iterable[Path]:
    if root.is_file():
        yield root
        return
    if not root.exists():
        return
    for p in sorted(root.rglob("*")):
        if p.is_file() and p.suffix.lower() in exts:
            yield p

def load_sheet(path: Path) -> CharacterSheet:
    data = _load_file(path)
    try:
        return SheetAdapter.validate_python(data)
    except ValidationError as e:
        raise SheetFormatError(f"{path}: {e}") from e

def save_sheet(sheet: CharacterSheet, path: Path) -> None:
    data = sheet.model_dump(mode="json", by_alias=True)
    if _is_yaml(path):
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(data, indent=2)
    path.write_text(text, encoding="utf-8")
