import pytest

from bidtrack.core import workflow
from bidtrack.core.errors import (
    DuplicateNameError,
    DuplicatePositionError,
    DuplicateTransitionError,
    InvalidPositionError,
    NotFoundError,
    ProtectedStatusError,
)


def anchors():
    return [
        {"name": "Открыта", "position": 1, "allowedActions": []},
        {"name": "Закрыта", "position": 999, "allowedActions": []},
    ]


def test_add_status_does_not_mutate_input():
    original = anchors()
    result, created = workflow.add_status(original, name="Собрать", position=2)

    assert len(original) == 2
    assert len(result) == 3
    assert created == {"name": "Собрать", "position": 2, "allowedActions": []}


@pytest.mark.parametrize("position", [0, -1, 1000])
def test_add_status_rejects_out_of_range_positions(position):
    with pytest.raises(InvalidPositionError):
        workflow.add_status(anchors(), name="X", position=position)


def test_add_status_accepts_range_bounds():
    result, _ = workflow.add_status([], name="A", position=1)
    result, _ = workflow.add_status(result, name="B", position=999)
    assert [s["position"] for s in result] == [1, 999]


def test_position_conflict_is_reported_before_name_conflict():
    with pytest.raises(DuplicatePositionError):
        workflow.add_status(anchors(), name="Открыта", position=1)


def test_add_status_rejects_duplicate_name():
    with pytest.raises(DuplicateNameError):
        workflow.add_status(anchors(), name="Закрыта", position=5)


def test_update_status_keeps_extra_fields_and_actions():
    statuses = [{"name": "Открыта", "position": 1, "allowedActions": ["edit"], "color": "#fff"}]

    result, updated = workflow.update_status(statuses, position=1, name="Новая")

    assert updated == {"name": "Новая", "position": 1, "allowedActions": ["edit"], "color": "#fff"}
    assert statuses[0]["name"] == "Открыта"
    assert result == [updated]


def test_update_status_allows_name_collision():
    result, _ = workflow.update_status(anchors(), position=999, name="Открыта")
    assert [s["name"] for s in result] == ["Открыта", "Открыта"]


def test_update_missing_status():
    with pytest.raises(NotFoundError):
        workflow.update_status(anchors(), position=5, name="X")


def test_anchors_cannot_be_removed():
    for position in (1, 999):
        with pytest.raises(ProtectedStatusError):
            workflow.remove_status(anchors(), position=position)


def test_remove_missing_status_is_not_found_even_for_anchor_positions():
    with pytest.raises(NotFoundError):
        workflow.remove_status([], position=1)


def test_transition_needs_both_endpoints():
    with pytest.raises(InvalidPositionError):
        workflow.add_transition(anchors(), [], from_position=1, to_position=2)


def test_self_loop_and_duplicate_transition():
    transitions, created = workflow.add_transition(anchors(), [], from_position=1, to_position=1)
    assert created == {"fromPosition": 1, "toPosition": 1}

    with pytest.raises(DuplicateTransitionError):
        workflow.add_transition(anchors(), transitions, from_position=1, to_position=1)


def test_remove_transition_removes_single_match():
    transitions = [
        {"fromPosition": 1, "toPosition": 999},
        {"fromPosition": 999, "toPosition": 1},
    ]
    result = workflow.remove_transition(transitions, from_position=1, to_position=999)
    assert result == [{"fromPosition": 999, "toPosition": 1}]

    with pytest.raises(NotFoundError):
        workflow.remove_transition(result, from_position=1, to_position=999)


def test_next_statuses_skips_orphan_edges_and_sorts():
    statuses = anchors() + [{"name": "Собрать", "position": 2, "allowedActions": []}]
    transitions = [
        {"fromPosition": 1, "toPosition": 999},
        {"fromPosition": 1, "toPosition": 2},
        {"fromPosition": 1, "toPosition": 7},
    ]

    result = workflow.next_statuses(statuses, transitions, position=1)
    assert [s["position"] for s in result] == [2, 999]


def test_is_transition_allowed_by_name():
    statuses = anchors()
    transitions = [{"fromPosition": 1, "toPosition": 999}]

    assert workflow.is_transition_allowed(statuses, transitions, "Открыта", "Закрыта")
    assert not workflow.is_transition_allowed(statuses, transitions, "Закрыта", "Открыта")
    assert not workflow.is_transition_allowed(statuses, transitions, "Открыта", "Нет такого")
