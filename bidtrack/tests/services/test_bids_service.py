import pytest

from bidtrack.core.errors import (
    CommentBidMismatchError,
    DomainError,
    InvalidStatusError,
    NotFoundError,
    TransitionNotAllowedError,
)
from bidtrack.models.role import Role
from bidtrack.services.audit_service import AuditAction, AuditService
from bidtrack.services.bids_service import BidService
from bidtrack.services.notifications_service import NotificationsService, NotificationType
from bidtrack.tests.factories import create_bid_type, create_user


def make_bid(db, svc, admin, client_row, bid_type=None, **extra):
    data = {"clientId": client_row.id, "title": "Выдать роутер", **extra}
    if bid_type is not None:
        data["bidTypeId"] = bid_type.id
    return svc.create(db, actor_user_id=admin.id, data=data)


def status_audits(db, bid_id):
    return [
        a for a in AuditService().for_bid(db, bid_id)
        if a.action == AuditAction.BID_STATUS_CHANGED
    ]


def test_new_bid_starts_in_initial_status_and_inherits_sla(db, admin, client_row, bid_type):
    bid = make_bid(db, BidService(), admin, client_row, bid_type)

    assert bid.status == "Открыта"
    assert bid.planned_reaction_time_minutes == 60
    assert bid.planned_duration_minutes == 1440


def test_explicit_sla_wins_over_bid_type(db, admin, client_row, bid_type):
    bid = make_bid(db, BidService(), admin, client_row, bid_type, plannedReactionTimeMinutes=5)

    assert bid.planned_reaction_time_minutes == 5
    assert bid.planned_duration_minutes == 1440


def test_bid_without_type_uses_default_status(db, admin, client_row):
    bid = make_bid(db, BidService(), admin, client_row)
    assert bid.status == "Открыта"
    assert bid.bid_type_id is None


def test_create_requires_existing_client_and_parent(db, admin, client_row):
    svc = BidService()
    with pytest.raises(NotFoundError):
        svc.create(db, actor_user_id=admin.id, data={"clientId": 999, "title": "x"})
    with pytest.raises(NotFoundError):
        svc.create(
            db,
            actor_user_id=admin.id,
            data={"clientId": client_row.id, "title": "x", "parentId": 999},
        )


def test_create_with_unknown_status_is_rejected_when_enforced(db, admin, client_row, bid_type):
    with pytest.raises(InvalidStatusError):
        make_bid(db, BidService(enforce_transitions=True), admin, client_row, bid_type, status="Выдумана")


def test_move_without_edge_is_rejected(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    with pytest.raises(TransitionNotAllowedError):
        svc.change_status(db, bid.id, to_status="Закрыта", actor_user_id=admin.id)

    assert svc.get(db, bid.id).status == "Открыта"
    assert status_audits(db, bid.id) == []


def test_move_along_edges_writes_audit(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    svc.change_status(db, bid.id, to_status="Собрать", actor_user_id=admin.id)
    bid = svc.change_status(
        db, bid.id, to_status="Закрыта", actor_user_id=admin.id, comment="выдано"
    )

    assert bid.status == "Закрыта"
    audits = status_audits(db, bid.id)
    assert len(audits) == 2
    assert audits[0].details_json == {"from": "Открыта", "to": "Собрать"}
    assert audits[1].details_json == {"from": "Собрать", "to": "Закрыта", "comment": "выдано"}


def test_move_to_same_status_is_a_no_op(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    svc.change_status(db, bid.id, to_status="Открыта", actor_user_id=admin.id)
    assert status_audits(db, bid.id) == []


def test_unknown_target_status_is_invalid(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    with pytest.raises(InvalidStatusError):
        svc.change_status(db, bid.id, to_status="Нет такого", actor_user_id=admin.id)


def test_permissive_mode_accepts_any_string(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=False)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    bid = svc.change_status(db, bid.id, to_status="Что угодно", actor_user_id=admin.id)
    assert bid.status == "Что угодно"


def test_update_status_goes_through_the_gate(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    with pytest.raises(TransitionNotAllowedError):
        svc.update(db, bid.id, actor_user_id=admin.id, changes={"title": "new", "status": "Закрыта"})

    bid = svc.get(db, bid.id)
    assert bid.title == "Выдать роутер"
    assert AuditService().for_bid(db, bid.id) == []


def test_update_records_changed_fields(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    bid = svc.update(
        db,
        bid.id,
        actor_user_id=admin.id,
        changes={"title": "Выдать два роутера", "status": "Собрать", "description": None},
    )

    assert bid.title == "Выдать два роутера"
    assert bid.status == "Собрать"
    actions = [a.action for a in AuditService().for_bid(db, bid.id)]
    assert actions == [AuditAction.BID_UPDATED, AuditAction.BID_STATUS_CHANGED]


def test_available_statuses_follow_graph(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    assert [s["name"] for s in svc.available_statuses(bid)] == ["Собрать", "Отложить"]


def test_responsible_name_resolution(db, admin, client_row):
    db.add(Role(name="Склад", permissions_json={}))
    db.commit()
    bt = create_bid_type(
        db,
        name="С ответственными",
        statuses=[
            {"name": "Открыта", "position": 1, "allowedActions": [], "responsibleRoleId": "Склад"},
            {"name": "Закрыта", "position": 999, "allowedActions": [], "responsibleUserId": admin.id},
        ],
        transitions=[{"fromPosition": 1, "toPosition": 999}],
    )
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bt)

    assert svc.responsible_name(db, bid) == "Роль: Склад"

    bid = svc.change_status(db, bid.id, to_status="Закрыта", actor_user_id=admin.id)
    assert svc.responsible_name(db, bid) == "Администратор"

    worker = create_user(db, username="worker", full_name="Монтажник")
    bid = svc.update(db, bid.id, actor_user_id=admin.id, changes={"currentResponsibleUserId": worker.id})
    assert svc.responsible_name(db, bid) == "Монтажник"
    assert AuditService().for_bid(db, bid.id)[-1].action == AuditAction.BID_RESPONSIBLE_CHANGED


def test_comments_and_history(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)

    comment = svc.add_comment(db, bid.id, user_id=admin.id, content="Позвонить клиенту")
    svc.change_status(db, bid.id, to_status="Собрать", actor_user_id=admin.id)

    history = svc.history(db, bid.id)
    actions = [h["action"] for h in history]
    assert actions[0] == "Bid created"
    assert "Comment added: Позвонить клиенту" in actions
    assert any(a.startswith(AuditAction.BID_STATUS_CHANGED) for a in actions)

    other = create_user(db, username="other", full_name="Другой")
    with pytest.raises(PermissionError):
        svc.delete_comment(db, bid.id, comment.id, user_id=other.id)

    svc.delete_comment(db, bid.id, comment.id, user_id=admin.id)
    assert svc.list_comments(db, bid.id) == []


def test_list_paginates(db, admin, client_row):
    svc = BidService()
    for i in range(5):
        svc.create(db, actor_user_id=admin.id, data={"clientId": client_row.id, "title": f"bid {i}"})

    rows, pagination = svc.list(db, page=2, limit=2)
    assert len(rows) == 2
    assert pagination == {"total": 5, "page": 2, "limit": 2, "totalPages": 3}


# ---------------------------
# Bid type change
# ---------------------------


def other_type(db, statuses=None):
    return create_bid_type(
        db,
        name="Подключение",
        statuses=statuses
        if statuses is not None
        else [
            {"name": "Новая", "position": 1, "allowedActions": []},
            {"name": "Готово", "position": 999, "allowedActions": []},
        ],
        transitions=[{"fromPosition": 1, "toPosition": 999}],
    )


def test_changing_bid_type_moves_bid_to_new_initial_status(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)
    other = other_type(db)

    bid = svc.update(db, bid.id, actor_user_id=admin.id, changes={"bidTypeId": other.id})

    assert bid.bid_type_id == other.id
    assert bid.status == "Новая"
    assert svc.current_status(bid)["position"] == 1
    audits = status_audits(db, bid.id)
    assert len(audits) == 1
    assert audits[0].details_json == {"from": "Открыта", "to": "Новая", "reason": "bid_type_changed"}


def test_changing_bid_type_keeps_status_the_new_type_defines(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)
    other = other_type(
        db,
        statuses=[
            {"name": "Открыта", "position": 1, "allowedActions": []},
            {"name": "Готово", "position": 999, "allowedActions": []},
        ],
    )

    bid = svc.update(db, bid.id, actor_user_id=admin.id, changes={"bidTypeId": other.id})

    assert bid.status == "Открыта"
    assert status_audits(db, bid.id) == []


def test_changing_bid_type_with_explicit_status(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)
    other = other_type(db)

    bid = svc.update(
        db, bid.id, actor_user_id=admin.id, changes={"bidTypeId": other.id, "status": "Готово"}
    )
    assert bid.status == "Готово"

    with pytest.raises(InvalidStatusError):
        svc.update(db, bid.id, actor_user_id=admin.id, changes={"bidTypeId": bid_type.id, "status": "Нет такого"})
    assert svc.get(db, bid.id).bid_type_id == other.id


def test_changing_to_type_without_initial_status_is_rejected(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)
    other = other_type(db, statuses=[{"name": "Готово", "position": 999, "allowedActions": []}])

    with pytest.raises(InvalidStatusError):
        svc.update(db, bid.id, actor_user_id=admin.id, changes={"bidTypeId": other.id})

    bid = svc.get(db, bid.id)
    assert bid.bid_type_id == bid_type.id
    assert bid.status == "Открыта"


def test_changing_bid_type_in_permissive_mode_keeps_status(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=False)
    bid = make_bid(db, svc, admin, client_row, bid_type)
    other = other_type(db)

    bid = svc.update(db, bid.id, actor_user_id=admin.id, changes={"bidTypeId": other.id})
    assert bid.status == "Открыта"


# ---------------------------
# Responsible fallbacks
# ---------------------------


def test_unresolvable_responsible_reads_as_unassigned(db, admin, client_row):
    bt = create_bid_type(
        db,
        name="Без роли",
        statuses=[
            {"name": "Открыта", "position": 1, "allowedActions": [], "responsibleRoleId": "Удалённая"},
            {"name": "Закрыта", "position": 999, "allowedActions": [], "responsibleUserId": 4040},
        ],
        transitions=[{"fromPosition": 1, "toPosition": 999}],
    )
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bt)
    assert svc.responsible_name(db, bid) == "Не указан"

    bid = svc.change_status(db, bid.id, to_status="Закрыта", actor_user_id=admin.id)
    assert svc.responsible_name(db, bid) == "Не указан"


def test_bid_without_type_or_responsible_has_no_name(db, admin, client_row):
    svc = BidService()
    bid = make_bid(db, svc, admin, client_row)
    assert svc.responsible_name(db, bid) is None


# ---------------------------
# Comment editing
# ---------------------------


def test_author_can_edit_comment(db, admin, client_row):
    svc = BidService()
    bid = make_bid(db, svc, admin, client_row)
    comment = svc.add_comment(db, bid.id, user_id=admin.id, content="Черновик")

    edited = svc.update_comment(db, bid.id, comment.id, user_id=admin.id, content="  Итог  ")
    assert edited.content == "Итог"

    with pytest.raises(DomainError):
        svc.update_comment(db, bid.id, comment.id, user_id=admin.id, content="   ")

    other = create_user(db, username="other", full_name="Другой")
    with pytest.raises(PermissionError):
        svc.update_comment(db, bid.id, comment.id, user_id=other.id, content="чужое")

    with pytest.raises(NotFoundError):
        svc.update_comment(db, bid.id, 9999, user_id=admin.id, content="x")


def test_comment_must_belong_to_bid(db, admin, client_row):
    svc = BidService()
    first = make_bid(db, svc, admin, client_row)
    second = make_bid(db, svc, admin, client_row)
    comment = svc.add_comment(db, first.id, user_id=admin.id, content="Первая")

    with pytest.raises(CommentBidMismatchError):
        svc.update_comment(db, second.id, comment.id, user_id=admin.id, content="x")
    with pytest.raises(CommentBidMismatchError):
        svc.delete_comment(db, second.id, comment.id, user_id=admin.id)


def test_deleted_comment_is_audited(db, admin, client_row):
    svc = BidService()
    bid = make_bid(db, svc, admin, client_row)
    comment = svc.add_comment(db, bid.id, user_id=admin.id, content="Лишнее")

    svc.delete_comment(db, bid.id, comment.id, user_id=admin.id)

    audits = AuditService().for_bid(db, bid.id)
    assert [a.action for a in audits] == [AuditAction.COMMENT_DELETED]
    assert audits[0].details == 'Comment: "Лишнее"'


# ---------------------------
# Notifications from bid events
# ---------------------------


def test_assignment_and_status_change_notify_responsible(db, admin, client_row, bid_type):
    svc = BidService(enforce_transitions=True)
    bid = make_bid(db, svc, admin, client_row, bid_type)
    worker = create_user(db, username="worker", full_name="Монтажник")

    svc.update(db, bid.id, actor_user_id=admin.id, changes={"currentResponsibleUserId": worker.id})
    svc.change_status(db, bid.id, to_status="Собрать", actor_user_id=admin.id)

    rows, unread = NotificationsService().list(db, user_id=worker.id)
    assert unread == 2
    assert [n.type for n in rows] == [NotificationType.BID_STATUS, NotificationType.BID_ASSIGNED]
    assert all(n.bid_id == bid.id for n in rows)

    # the actor is not notified about their own moves
    assert NotificationsService().unread_count(db, user_id=admin.id) == 0
