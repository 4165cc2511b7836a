from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Set, Union

from .errors import (
    CycleError, CycleNode, Err, MissingDependency, MissingDependencyError, Ok,
    ResultMap, ResultValue, ScriptError, UpstreamError, UpstreamFailure,
    ValueCalculationError, describe_result,
)
from .exceptions import ScriptEvaluationError
from .index import ModifierIndex, ModifierRef, build_modifier_index
from .scripts import LiteralIntegerEvaluator, ScriptEvaluator
from .sheet import CharacterSheet, StaticValue
from .trace import TraceSession
from .values import StaticValueType

logger = logging.getLogger(__name__)


# -------- failure signals travelling down the frame stack --------
# A signal set while frame F is on top means "a dependency of F failed this way".

@dataclass
class _Missing:
    missing: MissingDependency

@dataclass
class _Cycle:
    start: str                 # property that was re-entered
    chain: List[CycleNode]     # nodes collected so far, innermost last
    closed: bool = False       # True once the re-entered frame has unwound

@dataclass
class _Upstream:
    failed_dependency: str

_Signal = Union[_Missing, _Cycle, _Upstream]


@dataclass
class _Frame:
    ref: ModifierRef
    position: int = 0

    @property
    def name(self) -> str:
        return self.ref.name

    def next_dependency(self) -> Optional[str]:
        deps = self.ref.dependencies
        if self.position >= len(deps):
            return None
        self.position += 1
        return deps[self.position - 1]


class _Resolution:
    """
    State of one calculate_all_values call: the result store and the set of
    properties on the current traversal path. Never reused across calls.
    """

    def __init__(self, sheet: CharacterSheet, evaluator: ScriptEvaluator, trace: Optional[TraceSession]):
        self.user_values: Mapping[str, StaticValueType] = sheet.user_values
        self.index: ModifierIndex = build_modifier_index(sheet.active_features)
        self.evaluator = evaluator
        self.trace = trace
        self.values: ResultMap = {}
        self.in_progress: Set[str] = set()
        self.evaluations = 0

    def run(self) -> ResultMap:
        for name, value in self.user_values.items():
            self._publish(name, Ok(ok=value), source="user value")
        for name, ref in self.index.items():
            if name in self.values:
                # user values are never recomputed
                logger.debug("User value '%s' overrides modifier from %s", name, ref)
                continue
            self._resolve(ref)
        logger.debug("Resolved %d properties (%d script evaluations)", len(self.values), self.evaluations)
        return self.values

    # -------- traversal --------
    def _resolve(self, root: ModifierRef) -> None:
        stack: List[_Frame] = [self._open(root)]
        signal: Optional[_Signal] = None
        while stack:
            frame = stack[-1]
            if signal is not None:
                signal = self._unwind(frame, signal)
                self._close(stack.pop())
                continue

            dep = frame.next_dependency()
            if dep is None:
                self._close(stack.pop())
                signal = self._evaluate(frame)
                continue

            existing = self.values.get(dep)
            if isinstance(existing, Ok):
                continue
            if existing is not None:
                signal = self._inherit(dep, existing.err)
            elif dep in self.in_progress:
                signal = _Cycle(start=dep, chain=[self.index[dep].node()])
            elif dep not in self.index:
                ref = frame.ref
                signal = _Missing(MissingDependency(
                    missing_dependency=dep,
                    found_in_feature_set=ref.feature_set.name,
                    found_in_feature=ref.feature.name,
                    found_in_property=ref.name,
                ))
            else:
                stack.append(self._open(self.index[dep]))

    def _open(self, ref: ModifierRef) -> _Frame:
        self.in_progress.add(ref.name)
        return _Frame(ref)

    def _close(self, frame: _Frame) -> None:
        self.in_progress.discard(frame.name)

    def _evaluate(self, frame: _Frame) -> Optional[_Signal]:
        value = frame.ref.modifier.value
        if isinstance(value, StaticValue):
            self._publish(frame.name, Ok(ok=value.static_value), source=str(frame.ref))
            return None
        deps = {d: self.values[d].ok for d in value.script.dependencies}
        self.evaluations += 1
        try:
            result = self.evaluator(value.script.script, deps)
        except ScriptEvaluationError as e:
            self._publish(frame.name, Err(err=ScriptError(script_error=str(e))), source=str(frame.ref))
            return _Upstream(failed_dependency=frame.name)
        self._publish(frame.name, Ok(ok=result), source=str(frame.ref))
        return None

    def _inherit(self, dep: str, err: ValueCalculationError) -> _Signal:
        # dependency already resolved to an error earlier in this call
        if isinstance(err, MissingDependencyError):
            return _Missing(err.missing_dependency)
        if isinstance(err, CycleError):
            return _Cycle(start=dep, chain=list(err.cycle), closed=True)
        if isinstance(err, UpstreamError):
            return _Upstream(err.upstream_error.failed_dependency)
        return _Upstream(dep)

    def _unwind(self, frame: _Frame, signal: _Signal) -> _Signal:
        ref = frame.ref
        if isinstance(signal, _Missing):
            self._publish(frame.name, Err(err=MissingDependencyError(missing_dependency=signal.missing)))
            return signal
        if isinstance(signal, _Upstream):
            self._publish(frame.name, Err(err=UpstreamError(upstream_error=UpstreamFailure(
                failed_dependency=signal.failed_dependency,
                found_in_feature_set=ref.feature_set.name,
                found_in_feature=ref.feature.name,
                found_in_property=ref.name,
            ))))
            return signal

        if signal.closed:
            # outside the cycle: lead-in path followed by the cycle
            chain = [ref.node()] + signal.chain
            self._publish(frame.name, Err(err=CycleError(cycle=chain)))
            return _Cycle(start=signal.start, chain=chain, closed=True)
        if frame.name != signal.start:
            return _Cycle(start=signal.start, chain=[ref.node()] + signal.chain)

        # the re-entered frame: chain is [members after start..., start]; rotate start to front
        cycle = signal.chain[-1:] + signal.chain[:-1]
        for i, node in enumerate(cycle):
            self._publish(node.property, Err(err=CycleError(cycle=cycle[i:] + cycle[:i])))
        return _Cycle(start=signal.start, chain=cycle, closed=True)

    def _publish(self, name: str, result: ResultValue, source: Optional[str] = None) -> None:
        self.values[name] = result
        if self.trace is not None:
            suffix = f" [{source}]" if source else ""
            self.trace.add(f"[Calc] {name} = {describe_result(result)}{suffix}", prop=name)


@dataclass
class Resolver:
    """
    Depth-first, memoized, cycle-guarded property evaluator.

    Every call starts from a clean store; the sheet is only read. The returned map covers
    every user value and every property an active modifier defines, mixing Ok and Err
    results; a failing property never hides unrelated ones.
    """
    evaluator: ScriptEvaluator = field(default_factory=LiteralIntegerEvaluator)
    trace: Optional[TraceSession] = None

    def calculate_all_values(self, sheet: CharacterSheet) -> ResultMap:
        return _Resolution(sheet, self.evaluator, self.trace).run()


def calculate_all_values(sheet: CharacterSheet, evaluator: Optional[ScriptEvaluator] = None,
                         trace: Optional[TraceSession] = None) -> ResultMap:
    return Resolver(evaluator or LiteralIntegerEvaluator(), trace).calculate_all_values(sheet)
