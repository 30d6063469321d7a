# bidtrack/core/workflow.py
"""
Pure rules for a bid type's workflow definition.

A workflow is two plain lists, exactly as stored on BidType:
- statuses:    [{"name", "position", "allowedActions", ...}]
- transitions: [{"fromPosition", "toPosition"}]

Functions here never mutate their inputs; they return new lists so the
caller can assign them back to the ORM row in one write.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

from bidtrack.core.errors import (
    DuplicateNameError,
    DuplicatePositionError,
    DuplicateTransitionError,
    InvalidPositionError,
    NotFoundError,
    ProtectedStatusError,
)

Status = Dict[str, Any]
Transition = Dict[str, Any]

OPEN_POSITION = 1
CLOSED_POSITION = 999
MIN_POSITION = OPEN_POSITION
MAX_POSITION = CLOSED_POSITION

ANCHOR_POSITIONS = frozenset({OPEN_POSITION, CLOSED_POSITION})


# ─────────────────────────────────────────────
# LOOKUPS
# ─────────────────────────────────────────────

def sort_statuses(statuses: List[Status]) -> List[Status]:
    return sorted(statuses, key=lambda s: s["position"])


def find_status(statuses: List[Status], position: int) -> Optional[Status]:
    for s in statuses:
        if s.get("position") == position:
            return s
    return None


def find_status_by_name(statuses: List[Status], name: str) -> Optional[Status]:
    for s in statuses:
        if s.get("name") == name:
            return s
    return None


def initial_status(statuses: List[Status]) -> Optional[Status]:
    return find_status(statuses, OPEN_POSITION)


def _has_transition(transitions: List[Transition], from_position: int, to_position: int) -> bool:
    return any(
        t.get("fromPosition") == from_position and t.get("toPosition") == to_position
        for t in transitions
    )


def build_graph(transitions: List[Transition]) -> Dict[int, Set[int]]:
    """
    Adjacency view: fromPosition -> {toPosition, ...}
    """
    graph: Dict[int, Set[int]] = {}
    for t in transitions:
        graph.setdefault(t["fromPosition"], set()).add(t["toPosition"])
    return graph


# ─────────────────────────────────────────────
# STATUS SET
# ─────────────────────────────────────────────

def add_status(
    statuses: List[Status],
    *,
    name: str,
    position: int,
    allowed_actions: Optional[List[str]] = None,
) -> Tuple[List[Status], Status]:
    if position < MIN_POSITION or position > MAX_POSITION:
        raise InvalidPositionError(
            f"Position must be between {MIN_POSITION} and {MAX_POSITION}"
        )
    if find_status(statuses, position) is not None:
        raise DuplicatePositionError(f"Status with position {position} already exists")
    if find_status_by_name(statuses, name) is not None:
        raise DuplicateNameError("Status with this name already exists")

    created: Status = {
        "name": name,
        "position": position,
        "allowedActions": list(allowed_actions or []),
    }
    return [*statuses, created], created


def update_status(
    statuses: List[Status],
    *,
    position: int,
    name: str,
    allowed_actions: Optional[List[str]] = None,
) -> Tuple[List[Status], Status]:
    """
    Renames a status and optionally replaces its allowed actions.
    Anchors are editable like any other status; name clashes are not checked.
    """
    current = find_status(statuses, position)
    if current is None:
        raise NotFoundError("Bid status not found")

    updated: Status = {
        **current,
        "name": name,
        "allowedActions": (
            list(allowed_actions)
            if allowed_actions is not None
            else current.get("allowedActions", [])
        ),
    }
    result = [updated if s is current else s for s in statuses]
    return result, updated


def remove_status(statuses: List[Status], *, position: int) -> List[Status]:
    """
    Transitions that point at the removed position are left untouched.
    """
    if find_status(statuses, position) is None:
        raise NotFoundError("Bid status not found")
    if position in ANCHOR_POSITIONS:
        raise ProtectedStatusError("Cannot delete default open or closed status")
    return [s for s in statuses if s.get("position") != position]


# ─────────────────────────────────────────────
# TRANSITION GRAPH
# ─────────────────────────────────────────────

def add_transition(
    statuses: List[Status],
    transitions: List[Transition],
    *,
    from_position: int,
    to_position: int,
) -> Tuple[List[Transition], Transition]:
    if find_status(statuses, from_position) is None or find_status(statuses, to_position) is None:
        raise InvalidPositionError("Invalid status positions")
    if _has_transition(transitions, from_position, to_position):
        raise DuplicateTransitionError("Transition already exists")

    created: Transition = {"fromPosition": from_position, "toPosition": to_position}
    return [*transitions, created], created


def remove_transition(
    transitions: List[Transition],
    *,
    from_position: int,
    to_position: int,
) -> List[Transition]:
    if not _has_transition(transitions, from_position, to_position):
        raise NotFoundError("Transition not found")

    result: List[Transition] = []
    removed = False
    for t in transitions:
        if not removed and t.get("fromPosition") == from_position and t.get("toPosition") == to_position:
            removed = True
            continue
        result.append(t)
    return result


def next_statuses(
    statuses: List[Status],
    transitions: List[Transition],
    *,
    position: int,
) -> List[Status]:
    """
    Statuses reachable in one move from `position`, ordered by position.
    Edges pointing at removed statuses are skipped.
    """
    if find_status(statuses, position) is None:
        raise NotFoundError("Bid status not found")
    targets = build_graph(transitions).get(position, set())
    return sort_statuses([s for s in statuses if s.get("position") in targets])


def is_transition_allowed(
    statuses: List[Status],
    transitions: List[Transition],
    from_status: str,
    to_status: str,
) -> bool:
    """
    True iff both names belong to the status set and an edge
    from.position -> to.position exists.
    """
    src = find_status_by_name(statuses, from_status)
    dst = find_status_by_name(statuses, to_status)
    if src is None or dst is None:
        return False
    return _has_transition(transitions, src["position"], dst["position"])
