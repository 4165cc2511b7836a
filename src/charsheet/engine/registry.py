from __future__ import annotations
import threading
from typing import Dict, List, Optional
from pydantic import ValidationError
from .errors import ResultMap, dump_results
from .exceptions import SheetFormatError, UnknownSheetError
from .requirements import sorted_required_user_values
from .resolver import Resolver
from .scripts import LiteralIntegerEvaluator, ScriptEvaluator
from .sheet import CharacterSheet
from .values import StaticValueAdapter


class SheetRegistry:
    """
    Host-owned table of named sheets, marshalled to and from JSON.

    One lock guards the table and every sheet in it. Calculations run on a deep copy
    taken under the lock, so they never observe a sheet mid-edit.
    """

    def __init__(self, evaluator: Optional[ScriptEvaluator] = None):
        self._sheets: Dict[str, CharacterSheet] = {}
        self._lock = threading.Lock()
        self.evaluator = evaluator or LiteralIntegerEvaluator()

    def _require(self, name: str) -> CharacterSheet:
        sheet = self._sheets.get(name)
        if sheet is None:
            raise UnknownSheetError(f"no sheet named {name!r}")
        return sheet

    def _snapshot(self, name: str) -> CharacterSheet:
        with self._lock:
            return self._require(name).model_copy(deep=True)

    # -------- create / read / update --------
    def create_from_json(self, name: str, text: str | bytes) -> CharacterSheet:
        try:
            sheet = CharacterSheet.model_validate_json(text)
        except ValidationError as e:
            raise SheetFormatError(f"sheet {name!r}: {e}") from e
        with self._lock:
            self._sheets[name] = sheet
        return sheet.model_copy(deep=True)

    def put(self, name: str, sheet: CharacterSheet) -> None:
        with self._lock:
            self._sheets[name] = sheet.model_copy(deep=True)

    def get(self, name: str) -> CharacterSheet:
        return self._snapshot(name)

    def get_as_json(self, name: str) -> str:
        return self._snapshot(name).model_dump_json(by_alias=True)

    def remove(self, name: str) -> None:
        with self._lock:
            self._require(name)
            del self._sheets[name]

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._sheets)

    def set_user_value_from_json(self, sheet_name: str, value_name: str, text: str | bytes) -> None:
        try:
            value = StaticValueAdapter.validate_json(text)
        except ValidationError as e:
            raise SheetFormatError(f"user value {value_name!r}: {e}") from e
        with self._lock:
            self._require(sheet_name).set_user_value(value_name, value)

    # -------- calculation --------
    def calculate_all_values(self, name: str) -> ResultMap:
        return Resolver(self.evaluator).calculate_all_values(self._snapshot(name))

    def calculate_all_values_as_json(self, name: str) -> str:
        return dump_results(self.calculate_all_values(name))

    def find_minimum_required_user_values(self, name: str) -> List[str]:
        return sorted_required_user_values(self._snapshot(name))
