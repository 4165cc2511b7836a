from charsheet.engine.requirements import (
    find_minimum_required_user_values, sorted_required_user_values, unsatisfied_user_values,
)
from charsheet.engine.sheet import CharacterSheet
from sheet_builders import const, feature, feature_set, script, single_set_sheet


def test_reads_minus_defines():
    sheet = CharacterSheet(active_features=[
        feature_set("base", feature("Attributes", script("MeleeAttack", "11", "Strength"))),
    ])
    assert find_minimum_required_user_values(sheet.active_features) == {"Strength"}
    assert sheet.find_minimum_required_user_values() == {"Strength"}

def test_defined_dependencies_are_not_required():
    sheet = single_set_sheet(
        script("Attack", "1", "Strength", "Bonus"),
        const("Bonus", 2),
        script("Damage", "3", "Weapon"),
    )
    assert find_minimum_required_user_values(sheet) == {"Strength", "Weapon"}
    assert sorted_required_user_values(sheet) == ["Strength", "Weapon"]

def test_user_values_do_not_satisfy_requirements():
    sheet = single_set_sheet(script("Attack", "1", "Strength"), user_values={"Strength": 10})
    assert find_minimum_required_user_values(sheet) == {"Strength"}
    assert unsatisfied_user_values(sheet) == []

def test_unsatisfied_lists_only_unsupplied_names():
    sheet = single_set_sheet(script("Attack", "1", "Strength", "Dexterity"), user_values={"Strength": 10})
    assert unsatisfied_user_values(sheet) == ["Dexterity"]

def test_inactive_features_ignored():
    sheet = CharacterSheet(
        active_features=[feature_set("base", feature("Rules", script("Attack", "1", "Strength")))],
        inactive_features=[feature_set("belt", feature("Giant Strength", const("Strength", 21)))],
    )
    assert find_minimum_required_user_values(sheet) == {"Strength"}

def test_cycles_report_nothing():
    sheet = single_set_sheet(script("A", "1", "B"), script("B", "1", "A"))
    assert find_minimum_required_user_values(sheet) == set()

def test_empty_and_pure():
    assert find_minimum_required_user_values([]) == set()
    sheet = single_set_sheet(script("Attack", "1", "Strength"))
    before = sheet.model_dump()
    find_minimum_required_user_values(sheet)
    assert sheet.model_dump() == before
