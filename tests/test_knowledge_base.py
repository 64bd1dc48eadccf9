import json
from pathlib import Path

import pytest

from rams_engine.knowledge_base import KnowledgeBase, KnowledgeBaseIntegrityError, load_knowledge_base
from rams_engine.models import Activity, ActivityCategory, Control, Hazard


def _hazard(code: str, sort_order: int = 0, is_active: bool = True) -> Hazard:
    return Hazard(
        code=code,
        name=code.title(),
        description=f"{code} hazard",
        category="shock",
        severity="high",
        is_active=is_active,
        sort_order=sort_order,
    )


def _control(code: str, hazards: tuple[str, ...]) -> Control:
    return Control(
        code=code,
        name=code.title(),
        description=f"{code} control",
        category="engineering",
        applicable_hazard_codes=hazards,
        effectiveness="high",
    )


def _activity(code: str, hazards: tuple[str, ...] = (), controls: tuple[str, ...] = ()) -> Activity:
    return Activity(
        code=code,
        name=code.title(),
        description=f"{code} work",
        category="power_distribution",
        hazard_codes=hazards,
        control_codes=controls,
    )


def test_bundled_knowledge_base_loads_and_validates() -> None:
    kb = load_knowledge_base()
    assert len(kb.hazards) == 14
    assert len(kb.controls) == 27
    assert len(kb.activities) == 70
    assert len(kb.categories()) == 14
    kb.validate()


def test_lookups_by_code() -> None:
    kb = load_knowledge_base()
    assert kb.hazard("arc_flash").severity == "high"
    assert kb.control("lockout_tagout").category == "administrative"
    assert kb.activity("distribution_board").name == "Distribution Board Installation"
    assert kb.hazard("no_such_hazard") is None
    assert kb.control("no_such_control") is None
    assert kb.activity("no_such_activity") is None


def test_active_lookups_filter_and_sort() -> None:
    kb = KnowledgeBase.from_tables(
        hazards=[_hazard("b", sort_order=2), _hazard("a", sort_order=1), _hazard("off", is_active=False)],
        controls=[],
        activities=[],
    )
    assert [hazard.code for hazard in kb.active_hazards()] == ["a", "b"]


def test_active_activities_sorted_by_sort_order() -> None:
    kb = load_knowledge_base()
    ordered = [activity.sort_order for activity in kb.active_activities()]
    assert ordered == sorted(ordered)


def test_dangling_activity_hazard_is_fatal() -> None:
    with pytest.raises(KnowledgeBaseIntegrityError) as excinfo:
        KnowledgeBase.from_tables(
            hazards=[_hazard("shock")],
            controls=[],
            activities=[_activity("db", hazards=("shock", "ghost"))],
        )
    assert excinfo.value.problems == ["activity 'db' cites unknown hazard 'ghost'"]


def test_dangling_activity_control_is_fatal() -> None:
    with pytest.raises(KnowledgeBaseIntegrityError):
        KnowledgeBase.from_tables(
            hazards=[_hazard("shock")],
            controls=[],
            activities=[_activity("db", hazards=("shock",), controls=("isolation",))],
        )


def test_dangling_control_hazard_is_fatal() -> None:
    with pytest.raises(KnowledgeBaseIntegrityError) as excinfo:
        KnowledgeBase.from_tables(hazards=[], controls=[_control("isolation", ("shock",))], activities=[])
    assert "control 'isolation' applies to unknown hazard 'shock'" in excinfo.value.problems


def test_duplicate_codes_are_reported() -> None:
    with pytest.raises(KnowledgeBaseIntegrityError) as excinfo:
        KnowledgeBase.from_tables(hazards=[_hazard("shock"), _hazard("shock")], controls=[], activities=[])
    assert "duplicate hazard code 'shock'" in excinfo.value.problems


def test_all_problems_reported_together() -> None:
    with pytest.raises(KnowledgeBaseIntegrityError) as excinfo:
        KnowledgeBase.from_tables(
            hazards=[],
            controls=[_control("isolation", ("x",))],
            activities=[_activity("db", hazards=("y",), controls=("z",))],
        )
    assert len(excinfo.value.problems) == 3
    assert isinstance(excinfo.value, ValueError)


def test_invalid_enumeration_rejected_at_load() -> None:
    with pytest.raises(ValueError):
        KnowledgeBase.from_mapping(
            {
                "hazards": [
                    {"code": "x", "name": "X", "description": "x", "category": "shock", "severity": "extreme"}
                ]
            }
        )


def test_controls_for_hazard() -> None:
    kb = load_knowledge_base()
    codes = [control.code for control in kb.controls_for_hazard("underground_cable_strike")]
    assert codes == ["cable_avoidance_tools", "cable_protection"]


def test_regulations_for_activity_includes_wildcard() -> None:
    kb = load_knowledge_base()
    codes = {regulation.code for regulation in kb.regulations_for_activity("isolation")}
    assert "ewr_reg_12" in codes
    # Regulation 4 applies to all electrical work.
    assert "ewr_reg_4" in codes
    assert "ewr_reg_4" in {regulation.code for regulation in kb.regulations_for_activity("anything")}


def test_methods_and_competencies_by_work_type() -> None:
    kb = load_knowledge_base()
    assert "safe_isolation" in [method.code for method in kb.methods_for_work_type("maintenance")]
    assert kb.method("safe_isolation").steps[0].step_number == 1
    assert "qualified_electrician" in [c.code for c in kb.competencies_for_work_type("installation")]
    assert kb.competency("qualified_electrician").level == "competent"


def test_activities_by_category() -> None:
    kb = load_knowledge_base()
    activities = kb.activities_by_category("power_distribution")
    assert activities
    assert all(activity.category == "power_distribution" for activity in activities)


def test_load_from_override_directory(tmp_path: Path) -> None:
    (tmp_path / "hazards.json").write_text(
        json.dumps({"hazards": [{"code": "h", "name": "H", "description": "h", "category": "fire", "severity": "low"}]})
    )
    (tmp_path / "activities.json").write_text(
        json.dumps({"activities": [{"code": "a", "name": "A", "description": "a", "category": "misc", "hazard_codes": ["h"]}]})
    )
    kb = load_knowledge_base(tmp_path)
    assert list(kb.hazards) == ["h"]
    assert kb.activity("a").hazard_codes == ("h",)


def test_override_directory_with_dangling_reference_fails(tmp_path: Path) -> None:
    (tmp_path / "activities.json").write_text(
        json.dumps({"activities": [{"code": "a", "name": "A", "description": "a", "category": "misc", "hazard_codes": ["h"]}]})
    )
    with pytest.raises(KnowledgeBaseIntegrityError):
        load_knowledge_base(tmp_path)


def test_undeclared_activity_category_is_fatal() -> None:
    with pytest.raises(KnowledgeBaseIntegrityError) as excinfo:
        KnowledgeBase.from_tables(
            hazards=[],
            controls=[],
            activities=[_activity("db")],
            categories=[ActivityCategory(code="testing", name="Testing", description="Testing work")],
        )
    assert excinfo.value.problems == ["activity 'db' has unknown category 'power_distribution'"]
