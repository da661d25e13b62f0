from __future__ import annotations

import threading

import pytest

from seatshare.core.errors import (
    AlreadyAssignedError,
    DuplicateRequestError,
    InvalidTransitionError,
    NotFoundError,
    UnsupportedError,
    ValidationError,
)
from seatshare.domain.requests import RequestStatus


def _all_keys(payload):
    if isinstance(payload, dict):
        for key, value in payload.items():
            yield key
            yield from _all_keys(value)
    elif isinstance(payload, list):
        for item in payload:
            yield from _all_keys(item)


def test_request_is_assigned_when_capacity_exists(container, catalog, make_account):
    account = make_account(catalog.provider, 2, country_id=catalog.pt)
    svc = container.request_service

    result = svc.request_slot("alice", catalog.provider, catalog.pt)

    assert result.queued is False
    assert result.request.status == RequestStatus.ASSIGNED.value
    assert result.request.assigned_slot_id is not None
    assert result.request.processed_at is not None
    slot = container.slots.find_by_id(result.request.assigned_slot_id)
    assert slot.subscription_id == account.id
    assert container.subscriptions.find_by_id(account.id).available_slots == 1


def test_race_for_the_last_seat(container, catalog, make_account):
    account = make_account(catalog.provider, 1, country_id=catalog.pt)
    svc = container.request_service
    barrier = threading.Barrier(2)
    results, errors = [], []

    def worker(user_id: str) -> None:
        barrier.wait()
        try:
            results.append(svc.request_slot(user_id, catalog.provider, catalog.pt))
        except Exception as exc:  # surfaced through the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(u,)) for u in ("user-1", "user-2")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert errors == []
    assert sorted(r.request.status for r in results) == [RequestStatus.ASSIGNED.value, RequestStatus.PENDING.value]
    assert [r.queued for r in results].count(True) == 1
    assert container.subscriptions.find_by_id(account.id).available_slots == 0
    assert container.slots.count_active_for(account.id) == 1


def test_holder_of_a_seat_gets_already_assigned_for_any_country(container, catalog, make_account):
    make_account(catalog.provider, 3, country_id=catalog.pt)
    es_account = make_account(catalog.provider, 3, country_id=catalog.es)
    svc = container.request_service
    svc.request_slot("alice", catalog.provider, catalog.pt)

    with pytest.raises(AlreadyAssignedError):
        svc.request_slot("alice", catalog.provider, catalog.es)
    with pytest.raises(AlreadyAssignedError):
        svc.request_slot("alice", catalog.provider, catalog.pt)
    with pytest.raises(AlreadyAssignedError):
        svc.request_slot("alice", catalog.provider)

    assert len(svc.list_user_requests("alice")) == 1
    assert len(svc.get_user_slots("alice")) == 1
    assert container.subscriptions.find_by_id(es_account.id).available_slots == 3


def test_unsupported_or_unknown_targets_fail_before_any_write(container, catalog):
    svc = container.request_service
    with pytest.raises(UnsupportedError):
        svc.request_slot("alice", catalog.provider, catalog.de)
    with pytest.raises(UnsupportedError):
        svc.request_slot("alice", catalog.provider, catalog.fr)  # supported but inactive
    with pytest.raises(NotFoundError):
        svc.request_slot("alice", catalog.provider, "no-such-country")
    with pytest.raises(NotFoundError):
        svc.request_slot("alice", "no-such-provider")
    with pytest.raises(ValidationError):
        svc.request_slot("  ", catalog.provider)
    assert svc.list_user_requests("alice") == []


def test_exhausted_pool_queues_the_request(container, catalog, make_account):
    elsewhere = make_account(catalog.provider, 4, country_id=catalog.es)
    full = make_account(catalog.provider, 0, country_id=catalog.pt)
    svc = container.request_service

    result = svc.request_slot("alice", catalog.provider, catalog.pt)

    assert result.queued is True
    assert result.request.status == RequestStatus.PENDING.value
    assert result.request.assigned_slot_id is None
    assert result.request.processed_at is None
    assert "queued" in result.to_dict()["message"]
    assert container.subscriptions.find_by_id(elsewhere.id).available_slots == 4
    assert container.subscriptions.find_by_id(full.id).available_slots == 0
    assert svc.get_user_slots("alice") == []


def test_second_identical_request_while_pending_is_a_duplicate(container, catalog):
    svc = container.request_service
    first = svc.request_slot("alice", catalog.provider, catalog.pt)
    assert first.queued

    with pytest.raises(DuplicateRequestError):
        svc.request_slot("alice", catalog.provider, catalog.pt)

    requests = svc.list_user_requests("alice")
    assert [r.id for r in requests] == [first.request.id]
    # a different tuple is a different request
    assert svc.request_slot("alice", catalog.provider, catalog.es).queued


def test_user_slots_expose_subscription_summary_without_credentials(container, catalog, make_account):
    account = make_account(catalog.provider, 2, country_id=catalog.pt)
    container.request_service.request_slot("alice", catalog.provider, catalog.pt)

    views = container.request_service.get_user_slots("alice")

    assert len(views) == 1
    assert views[0].subscription_id == account.id
    payload = views[0].to_dict()
    assert payload["subscription"]["id"] == account.id
    assert payload["subscription"]["name"] == account.name
    keys = set(_all_keys(payload))
    assert "email" not in keys
    assert "password_hash" not in keys
    assert "password" not in keys


def test_process_pending_assigns_oldest_requests_first(container, catalog, make_account):
    svc = container.request_service
    queued = [svc.request_slot(user, catalog.provider, catalog.pt).request for user in ("u1", "u2", "u3")]
    assert all(r.status == RequestStatus.PENDING.value for r in queued)

    make_account(catalog.provider, 2, country_id=catalog.pt)
    assigned = svc.process_pending()

    assert [r.user_id for r in assigned] == ["u1", "u2"]
    assert all(r.status == RequestStatus.ASSIGNED.value for r in assigned)
    assert svc.get_request(queued[2].id).status == RequestStatus.PENDING.value
    assert svc.process_pending() == []


def test_process_pending_links_a_second_request_to_the_existing_seat(container, catalog, make_account):
    svc = container.request_service
    pt_request = svc.request_slot("alice", catalog.provider, catalog.pt).request
    es_request = svc.request_slot("alice", catalog.provider, catalog.es).request
    make_account(catalog.provider, 1, country_id=catalog.pt)
    es_account = make_account(catalog.provider, 1, country_id=catalog.es)

    svc.process_pending()

    pt_done = svc.get_request(pt_request.id)
    es_done = svc.get_request(es_request.id)
    assert pt_done.status == es_done.status == RequestStatus.ASSIGNED.value
    assert es_done.assigned_slot_id == pt_done.assigned_slot_id
    assert container.subscriptions.find_by_id(es_account.id).available_slots == 1
    assert len(svc.get_user_slots("alice")) == 1


def test_cancel_and_reject_only_apply_to_pending_requests(container, catalog, make_account):
    svc = container.request_service
    pending = svc.request_slot("alice", catalog.provider, catalog.pt).request

    with pytest.raises(NotFoundError):
        svc.cancel_request(pending.id, "mallory")
    cancelled = svc.cancel_request(pending.id, "alice")
    assert cancelled.status == RequestStatus.CANCELLED.value
    with pytest.raises(InvalidTransitionError):
        svc.cancel_request(pending.id, "alice")

    other = svc.request_slot("bob", catalog.provider, catalog.pt).request
    rejected = svc.reject_request(other.id, note="account under review")
    assert rejected.status == RequestStatus.REJECTED.value
    assert rejected.note == "account under review"

    make_account(catalog.provider, 1, country_id=catalog.pt)
    assigned = svc.request_slot("carol", catalog.provider, catalog.pt).request
    with pytest.raises(InvalidTransitionError):
        svc.reject_request(assigned.id)
    with pytest.raises(NotFoundError):
        svc.reject_request("missing")
    # cancelled/rejected requests are not picked up by the consumer
    assert svc.process_pending() == []


def test_released_seat_can_be_requested_again(container, catalog, make_account):
    account = make_account(catalog.provider, 1, country_id=catalog.pt)
    svc = container.request_service
    first = svc.request_slot("alice", catalog.provider, catalog.pt).request

    with pytest.raises(NotFoundError):
        svc.release_slot(first.assigned_slot_id, "bob")
    svc.release_slot(first.assigned_slot_id, "alice")
    assert container.subscriptions.find_by_id(account.id).available_slots == 1
    assert svc.get_user_slots("alice") == []

    again = svc.request_slot("alice", catalog.provider, catalog.pt)
    assert again.request.status == RequestStatus.ASSIGNED.value
    assert again.request.id != first.id


def test_concurrent_identical_requests_leave_one_pending_row(container, catalog):
    svc = container.request_service

    for attempt in range(10):
        user_id = f"racer-{attempt}"
        barrier = threading.Barrier(2)
        results, errors = [], []

        def worker() -> None:
            barrier.wait()
            try:
                results.append(svc.request_slot(user_id, catalog.provider, catalog.pt))
            except Exception as exc:  # collected for the assertions below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert len(results) == 1
        assert [type(e) for e in errors] == [DuplicateRequestError]
        assert len(svc.list_user_requests(user_id)) == 1


def test_inactive_provider_or_country_is_unsupported(container, catalog, make_account):
    make_account(catalog.provider, 3, country_id=catalog.pt)
    svc = container.request_service
    assert svc.request_slot("alice", catalog.provider, catalog.pt).queued is False

    container.catalog.set_country_active(catalog.pt, False)
    with pytest.raises(UnsupportedError):
        svc.request_slot("bob", catalog.provider, catalog.pt)

    container.catalog.set_provider_active(catalog.other_provider, False)
    with pytest.raises(UnsupportedError):
        svc.request_slot("bob", catalog.other_provider)
    assert svc.list_user_requests("bob") == []


def test_process_pending_skips_a_failing_request(container, catalog, make_account, monkeypatch):
    svc = container.request_service
    queued = {user: svc.request_slot(user, catalog.provider, catalog.pt).request for user in ("u1", "u2", "u3")}
    make_account(catalog.provider, 1, country_id=catalog.pt)

    real_assign = svc.engine.assign

    def flaky_assign(user_id, provider_id, country_id=None):
        if user_id == "u1":
            raise AlreadyAssignedError("seat vanished")
        if user_id == "u2":
            raise NotFoundError("provider vanished")
        return real_assign(user_id, provider_id, country_id)

    monkeypatch.setattr(svc.engine, "assign", flaky_assign)
    assigned = svc.process_pending()

    assert [r.user_id for r in assigned] == ["u3"]
    assert svc.get_request(queued["u1"].id).status == RequestStatus.PENDING.value
    assert svc.get_request(queued["u2"].id).status == RequestStatus.PENDING.value
