from __future__ import annotations
from typing import Dict, List, Mapping, Optional, Union
from pydantic import Field, TypeAdapter
from .values import WireModel, StaticValueType


class CycleNode(WireModel):
    """One hop of a dependency cycle: the site whose modifier defines `property`."""
    feature_set: str
    feature: str
    property: str

    def __str__(self) -> str:
        return f"{self.feature_set}/{self.feature}/{self.property}"


class MissingDependency(WireModel):
    missing_dependency: str
    found_in_feature_set: str
    found_in_feature: str
    found_in_property: str


class UpstreamFailure(WireModel):
    # failed_dependency is the property whose own script failed, however deep
    failed_dependency: str
    found_in_feature_set: str
    found_in_feature: str
    found_in_property: str


# ValueCalculationError arms, externally tagged like the rest of the wire format
class CycleError(WireModel):
    cycle: List[CycleNode]

class ScriptError(WireModel):
    script_error: str

class MissingDependencyError(WireModel):
    missing_dependency: MissingDependency

class UpstreamError(WireModel):
    upstream_error: UpstreamFailure

ValueCalculationError = Union[CycleError, ScriptError, MissingDependencyError, UpstreamError]


class Ok(WireModel):
    ok: StaticValueType = Field(alias="Ok")

class Err(WireModel):
    err: ValueCalculationError = Field(alias="Err")

ResultValue = Union[Ok, Err]
ResultMap = Dict[str, ResultValue]
ResultMapAdapter = TypeAdapter(ResultMap)


def describe_error(err: ValueCalculationError) -> str:
    if isinstance(err, CycleError):
        return "cyclic dependency: " + " -> ".join(str(n) for n in err.cycle)
    if isinstance(err, MissingDependencyError):
        md = err.missing_dependency
        return (f"missing dependency '{md.missing_dependency}' "
                f"(required by {md.found_in_feature_set}/{md.found_in_feature}/{md.found_in_property})")
    if isinstance(err, UpstreamError):
        up = err.upstream_error
        return f"depends on failed property '{up.failed_dependency}'"
    return f"script error: {err.script_error}"

def describe_result(result: ResultValue) -> str:
    if isinstance(result, Ok):
        return str(result.ok)
    return "ERROR " + describe_error(result.err)

def failed(results: Mapping[str, ResultValue]) -> Dict[str, ValueCalculationError]:
    return {k: v.err for k, v in results.items() if isinstance(v, Err)}

def dump_results(results: Mapping[str, ResultValue], indent: Optional[int] = None) -> str:
    ordered = {k: results[k] for k in sorted(results)}
    return ResultMapAdapter.dump_json(ordered, by_alias=True, indent=indent).decode("utf-8")

def load_results(text: str | bytes) -> ResultMap:
    return ResultMapAdapter.validate_json(text)
