import json
from charsheet.engine.errors import (
    CycleError, CycleNode, Err, MissingDependency, MissingDependencyError, Ok, ScriptError,
    UpstreamError, UpstreamFailure, describe_result, dump_results, failed, load_results,
)
from charsheet.engine.values import number


def _missing():
    return Err(err=MissingDependencyError(missing_dependency=MissingDependency(
        missing_dependency="Strength", found_in_feature_set="base",
        found_in_feature="Attributes", found_in_property="MeleeAttack")))

def _cycle():
    return Err(err=CycleError(cycle=[
        CycleNode(feature_set="base", feature="Rules", property="A"),
        CycleNode(feature_set="base", feature="Rules", property="B"),
    ]))


def test_result_json_shapes():
    results = {
        "Strength": Ok(ok=number(10)),
        "MeleeAttack": _missing(),
        "A": _cycle(),
        "Broken": Err(err=ScriptError(script_error="invalid digit found in string: 'x'")),
    }
    data = json.loads(dump_results(results))
    assert list(data) == ["A", "Broken", "MeleeAttack", "Strength"]
    assert data["Strength"] == {"Ok": {"number": 10}}
    assert data["MeleeAttack"] == {"Err": {"missingDependency": {
        "missingDependency": "Strength", "foundInFeatureSet": "base",
        "foundInFeature": "Attributes", "foundInProperty": "MeleeAttack"}}}
    assert data["A"] == {"Err": {"cycle": [
        {"featureSet": "base", "feature": "Rules", "property": "A"},
        {"featureSet": "base", "feature": "Rules", "property": "B"},
    ]}}
    assert data["Broken"] == {"Err": {"scriptError": "invalid digit found in string: 'x'"}}

def test_load_results_restores_variants():
    upstream = Err(err=UpstreamError(upstream_error=UpstreamFailure(
        failed_dependency="Broken", found_in_feature_set="base",
        found_in_feature="Rules", found_in_property="Total")))
    results = {"Total": upstream, "A": _cycle(), "Strength": Ok(ok=number(3))}
    assert load_results(dump_results(results)) == results

def test_describe_result():
    assert describe_result(Ok(ok=number(10))) == "10"
    assert describe_result(_cycle()) == "ERROR cyclic dependency: base/Rules/A -> base/Rules/B"
    assert describe_result(_missing()) == (
        "ERROR missing dependency 'Strength' (required by base/Attributes/MeleeAttack)")

def test_failed_filters_errors():
    results = {"Strength": Ok(ok=number(10)), "MeleeAttack": _missing()}
    assert failed(results) == {"MeleeAttack": results["MeleeAttack"].err}
