from __future__ import annotations
from typing import Dict, List, Optional, Set, Union, TYPE_CHECKING
from pydantic import ConfigDict, Field
from .exceptions import UnknownFeatureSetError
from .values import WireModel, StaticValueType, StaticNumber

if TYPE_CHECKING:
    from .errors import ResultMap
    from .scripts import ScriptEvaluator
    from .trace import TraceSession


class Script(WireModel):
    # Opaque rule-language text; only the declared dependencies may be read by it
    script: str
    dependencies: List[str] = Field(default_factory=list)


# CalculatedValue: {"staticValue": {...}} | {"script": {...}}
class StaticValue(WireModel):
    static_value: StaticValueType

    @property
    def dependencies(self) -> List[str]:
        return []

class ScriptValue(WireModel):
    script: Script

    @property
    def dependencies(self) -> List[str]:
        return self.script.dependencies

CalculatedValue = Union[StaticValue, ScriptValue]


class FeatureModifier(WireModel):
    property: str
    value: CalculatedValue

class Feature(WireModel):
    name: str
    description: str = ""
    base_type: str = ""  # UI grouping tag (class, race, item...); not used for calculation
    modifiers: List[FeatureModifier] = Field(default_factory=list)

class FeatureSet(WireModel):
    name: str
    description: str = ""
    features: List[Feature] = Field(default_factory=list)


class CharacterSheet(WireModel):
    """
    Root aggregate edited by the host between calculations.
    User values win over anything a feature would calculate for the same name.
    Inactive feature sets are kept for display only.
    """
    model_config = ConfigDict(frozen=False)

    user_values: Dict[str, StaticValueType] = Field(default_factory=dict)
    active_features: List[FeatureSet] = Field(default_factory=list)
    inactive_features: List[FeatureSet] = Field(default_factory=list)

    # -------- host-side editing --------
    def set_user_value(self, name: str, value: StaticValueType | int) -> None:
        if isinstance(value, int):
            value = StaticNumber(number=value)
        self.user_values[name] = value

    def remove_user_value(self, name: str) -> None:
        self.user_values.pop(name, None)

    def feature_set(self, name: str) -> Optional[FeatureSet]:
        for fs in self.active_features + self.inactive_features:
            if fs.name == name:
                return fs
        return None

    def is_active(self, name: str) -> bool:
        return any(fs.name == name for fs in self.active_features)

    def activate(self, name: str) -> None:
        self._move(name, self.inactive_features, self.active_features)

    def deactivate(self, name: str) -> None:
        self._move(name, self.active_features, self.inactive_features)

    def _move(self, name: str, src: List[FeatureSet], dst: List[FeatureSet]) -> None:
        for i, fs in enumerate(src):
            if fs.name == name:
                dst.append(src.pop(i))
                return
        if any(fs.name == name for fs in dst):
            return  # already where it should be
        raise UnknownFeatureSetError(f"no feature set named {name!r}")

    def property_names(self) -> Set[str]:
        """Every name a calculation will report on."""
        names = set(self.user_values)
        for fs in self.active_features:
            for feature in fs.features:
                names.update(m.property for m in feature.modifiers)
        return names

    # -------- calculation shortcuts --------
    def calculate_all_values(self, evaluator: Optional["ScriptEvaluator"] = None,
                             trace: Optional["TraceSession"] = None) -> "ResultMap":
        from .resolver import calculate_all_values
        return calculate_all_values(self, evaluator=evaluator, trace=trace)

    def find_minimum_required_user_values(self) -> Set[str]:
        from .requirements import find_minimum_required_user_values
        return find_minimum_required_user_values(self.active_features)
