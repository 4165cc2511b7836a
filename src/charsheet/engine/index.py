from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping
from .errors import CycleNode
from .sheet import Feature, FeatureModifier, FeatureSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModifierRef:
    """Where a property's authoritative modifier lives."""
    feature_set: FeatureSet
    feature: Feature
    modifier: FeatureModifier

    @property
    def name(self) -> str:
        return self.modifier.property

    @property
    def dependencies(self) -> List[str]:
        return self.modifier.value.dependencies

    def node(self) -> CycleNode:
        return CycleNode(feature_set=self.feature_set.name, feature=self.feature.name,
                         property=self.modifier.property)

    def __str__(self) -> str:
        return f"{self.feature_set.name}/{self.feature.name}"


@dataclass(frozen=True)
class ModifierCollision:
    property: str
    winner: ModifierRef
    shadowed: ModifierRef

    def describe(self) -> str:
        return f"'{self.property}' from {self.shadowed} is shadowed by {self.winner}"


class ModifierIndex(Mapping[str, ModifierRef]):
    """
    property name -> authoritative modifier. Iterates in first-definition order.
    Precedence: the first modifier for a property in sheet order
    (feature sets, then features, then modifiers) wins; later ones are shadowed.
    """

    def __init__(self, entries: Dict[str, ModifierRef], collisions: List[ModifierCollision]):
        self._entries = entries
        self.collisions = collisions

    def __getitem__(self, name: str) -> ModifierRef:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ModifierIndex({list(self._entries)!r}, collisions={len(self.collisions)})"


def build_modifier_index(active_features: Iterable[FeatureSet]) -> ModifierIndex:
    entries: Dict[str, ModifierRef] = {}
    collisions: List[ModifierCollision] = []
    for fs in active_features:
        for feature in fs.features:
            for modifier in feature.modifiers:
                ref = ModifierRef(fs, feature, modifier)
                winner = entries.get(modifier.property)
                if winner is None:
                    entries[modifier.property] = ref
                    continue
                col = ModifierCollision(modifier.property, winner, ref)
                collisions.append(col)
                logger.warning("Modifier collision: %s", col.describe())
    return ModifierIndex(entries, collisions)
