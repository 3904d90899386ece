from __future__ import annotations

from service_center.models.entities import User
from service_center.services.advisor_linking import map_advisor_names, normalize_advisor_name, suggest_advisor


def _user(display_name: str) -> User:
    return User(external_id=f"ext-{display_name}", email=f"{display_name}@test.local", display_name=display_name)


def test_normalize_advisor_name_collapses_whitespace() -> None:
    assert normalize_advisor_name("  Ravi   KUMAR ") == "ravi kumar"
    assert normalize_advisor_name(None) == ""


def test_map_advisor_names_exact_then_whitespace_normalized() -> None:
    ravi = _user("Ravi Kumar")
    anil = _user("Anil")

    mapping = map_advisor_names(["RAVI KUMAR", "ravi   kumar", "anil", "Suresh", "", None], [ravi, anil])

    assert mapping == {"RAVI KUMAR": ravi, "ravi   kumar": ravi, "anil": anil}


def test_map_advisor_names_does_not_use_containment() -> None:
    assert map_advisor_names(["Ravi"], [_user("Ravi Kumar")]) == {}


def test_suggest_advisor_prefers_equality_over_containment() -> None:
    ravi = _user("Ravi")
    ravi_kumar = _user("Ravi Kumar")

    assert suggest_advisor("ravi", [ravi_kumar, ravi]) is ravi
    assert suggest_advisor("Ravi Kumar Sharma", [ravi_kumar]) is ravi_kumar
    assert suggest_advisor("Kumar", [ravi_kumar]) is ravi_kumar
    assert suggest_advisor("Suresh", [ravi_kumar]) is None
    assert suggest_advisor("   ", [ravi_kumar]) is None
