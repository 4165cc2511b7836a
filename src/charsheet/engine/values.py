from __future__ import annotations
import re
from typing import Iterable, List, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel
from .exceptions import DiceNotationError

# Numbers on the wire are signed 32-bit
I32_MIN = -(2**31)
I32_MAX = 2**31 - 1


class WireModel(BaseModel):
    """
    Base for everything that crosses the sheet's JSON boundary:
    camelCase field names, unknown fields rejected, immutable once built.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


# -----------------------------
# Dice selectors / modifiers
# -----------------------------

class Highest(WireModel):
    highest: int = Field(ge=0)

class Lowest(WireModel):
    lowest: int = Field(ge=0)

class HigherThan(WireModel):
    higher_than: int = Field(ge=0)

class LowerThan(WireModel):
    lower_than: int = Field(ge=0)

class Exactly(WireModel):
    exactly: int = Field(ge=0)

DiceSelector = Union[Literal["all"], Highest, Lowest, HigherThan, LowerThan, Exactly]

class Keep(WireModel):
    keep: DiceSelector

class Drop(WireModel):
    drop: DiceSelector

class Reroll(WireModel):
    reroll: DiceSelector

class Explode(WireModel):
    explode: DiceSelector

class Count(WireModel):
    count: DiceSelector

DiceModifier = Union[Keep, Drop, Reroll, Explode, Count]

# notation letters: k/d/r/x/c, followed by the selector
_MODIFIER_LETTERS = {Keep: "k", Drop: "d", Reroll: "r", Explode: "x", Count: "c"}

def _selector_str(sel: DiceSelector) -> str:
    if sel == "all":
        return ""
    if isinstance(sel, Highest):
        return f"h{sel.highest}"
    if isinstance(sel, Lowest):
        return f"l{sel.lowest}"
    if isinstance(sel, HigherThan):
        return f">{sel.higher_than}"
    if isinstance(sel, LowerThan):
        return f"<{sel.lower_than}"
    return f"={sel.exactly}"

def _modifier_str(mod: DiceModifier) -> str:
    # every modifier model has exactly one field, holding the selector
    field_name = next(iter(type(mod).model_fields))
    return _MODIFIER_LETTERS[type(mod)] + _selector_str(getattr(mod, field_name))


# -----------------------------
# Dice values
# -----------------------------

class Dice(WireModel):
    amount: int = Field(ge=0, le=I32_MAX)
    sides: int = Field(ge=0, le=I32_MAX)
    modifiers: List[DiceModifier] = Field(default_factory=list)

    def same_kind(self, other: Dice) -> bool:
        return self.sides == other.sides and self.modifiers == other.modifiers

    def __str__(self) -> str:
        return f"{self.amount}d{self.sides}" + "".join(_modifier_str(m) for m in self.modifiers)


class DiceValue(WireModel):
    dice: List[Dice] = Field(default_factory=list)
    bonus: int = Field(default=0, ge=I32_MIN, le=I32_MAX)

    def add(self, other: StaticValueType) -> DiceValue:
        if isinstance(other, StaticNumber):
            return DiceValue(dice=list(self.dice), bonus=self.bonus + other.number)
        merged = list(self.dice)
        for od in other.dice.dice:
            for i, cur in enumerate(merged):
                if cur.same_kind(od):
                    merged[i] = Dice(amount=cur.amount + od.amount, sides=cur.sides, modifiers=cur.modifiers)
                    break
            else:
                merged.append(od)
        return DiceValue(dice=merged, bonus=self.bonus + other.dice.bonus)

    def minus(self, other: StaticValueType) -> DiceValue:
        if isinstance(other, StaticNumber):
            return DiceValue(dice=list(self.dice), bonus=self.bonus - other.number)
        remaining = list(self.dice)
        for od in other.dice.dice:
            for i, cur in enumerate(remaining):
                if cur.same_kind(od):
                    remaining[i] = cur.model_copy(update={"amount": cur.amount - od.amount})
                    break
        return DiceValue(dice=[d for d in remaining if d.amount > 0], bonus=self.bonus - other.dice.bonus)

    def __str__(self) -> str:
        parts = [str(d) for d in self.dice]
        if not parts:
            return str(self.bonus)
        text = "+".join(parts)
        if self.bonus > 0:
            text += f"+{self.bonus}"
        elif self.bonus < 0:
            text += str(self.bonus)
        return text


# -----------------------------
# StaticValueType: {"number": n} | {"dice": {...}}
# -----------------------------

class StaticNumber(WireModel):
    number: int = Field(ge=I32_MIN, le=I32_MAX)

    def __str__(self) -> str:
        return str(self.number)

class StaticDice(WireModel):
    dice: DiceValue

    def __str__(self) -> str:
        return str(self.dice)

StaticValueType = Union[StaticNumber, StaticDice]
StaticValueAdapter = TypeAdapter(StaticValueType)


def number(value: int) -> StaticNumber:
    return StaticNumber(number=value)

def add_values(values: Iterable[StaticValueType]) -> StaticValueType:
    """Sum numbers and dice; as soon as one operand is dice the result is dice."""
    acc: StaticValueType = StaticNumber(number=0)
    for v in values:
        if isinstance(acc, StaticNumber) and isinstance(v, StaticNumber):
            acc = StaticNumber(number=acc.number + v.number)
        elif isinstance(acc, StaticDice):
            acc = StaticDice(dice=acc.dice.add(v))
        else:
            acc = StaticDice(dice=v.dice.add(acc))
    return acc


_NOTATION = re.compile(r"\s*[+-]?\s*[0-9]+(d[0-9]+)?(\s*[+-]\s*[0-9]+(d[0-9]+)?)*\s*")
_TERM = re.compile(r"([+-]?)\s*([0-9]+)(?:d([0-9]+))?")

def parse_dice(text: str) -> StaticValueType:
    """
    Parse plain dice notation such as "10", "1d8+2" or "2d6+1d4-1".
    Terms without dice collapse to a number; dice modifiers are not part of the notation.
    """
    if not _NOTATION.fullmatch(text):
        raise DiceNotationError(f"not a dice expression: {text!r}")
    total = DiceValue()
    has_dice = False
    try:
        for m in _TERM.finditer(text):
            sign, amount, sides = m.group(1), int(m.group(2)), m.group(3)
            if sides is None:
                term: StaticValueType = StaticNumber(number=amount)
            else:
                has_dice = True
                die = Dice(amount=amount, sides=int(sides))
                if sign == "-" and not any(d.same_kind(die) and d.amount >= amount for d in total.dice):
                    raise DiceNotationError(f"cannot subtract {die} in {text!r}: not enough {die.sides}-sided dice")
                term = StaticDice(dice=DiceValue(dice=[die]))
            total = total.minus(term) if sign == "-" else total.add(term)
        if not has_dice:
            return StaticNumber(number=total.bonus)
        return StaticDice(dice=total)
    except ValidationError as e:
        raise DiceNotationError(f"{text!r} is out of range: {e.errors()[0]['msg']}") from e
