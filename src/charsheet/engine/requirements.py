from __future__ import annotations
from typing import Iterable, List, Set, Union
from .sheet import CharacterSheet, FeatureSet

FeatureSource = Union[CharacterSheet, Iterable[FeatureSet]]

def _active(source: FeatureSource) -> Iterable[FeatureSet]:
    if isinstance(source, CharacterSheet):
        return source.active_features
    return source

def find_minimum_required_user_values(source: FeatureSource) -> Set[str]:
    """
    Names read by some script but defined by no modifier (dependencies minus targets).

    Looks at active features only and ignores the current user values: supplying a
    value does not remove it from this set. One hop deep; cycles and chains that are
    only transitively undefined are not detected here.
    """
    required: Set[str] = set()
    specified: Set[str] = set()
    for fs in _active(source):
        for feature in fs.features:
            for modifier in feature.modifiers:
                specified.add(modifier.property)
                required.update(modifier.value.dependencies)
    return required - specified

def sorted_required_user_values(source: FeatureSource) -> List[str]:
    return sorted(find_minimum_required_user_values(source))

def unsatisfied_user_values(sheet: CharacterSheet) -> List[str]:
    # required inputs the operator has not supplied yet
    return sorted(find_minimum_required_user_values(sheet) - set(sheet.user_values))
