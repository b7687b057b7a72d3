import pytest
from sqlalchemy import update

from coursetrack.api.v1.term_subjects import service as term_subject_service
from coursetrack.api.v1.term_subjects.workflow import (
    WorkloadAction,
    allowed_actions,
    apply_transition,
)
from coursetrack.core.enums import WorkloadApproval
from coursetrack.core.exceptions import BusinessError
from coursetrack.core.models import TermSubject

from conftest import PROF_A_ID


@pytest.mark.parametrize(
    "state, action, expected",
    [
        ("pending", WorkloadAction.submit, WorkloadApproval.submitted),
        ("submitted", WorkloadAction.approve, WorkloadApproval.approved),
        ("submitted", WorkloadAction.reject, WorkloadApproval.pending),
        (None, WorkloadAction.submit, WorkloadApproval.submitted),
    ],
)
def test_allowed_transitions(state, action, expected):
    assert apply_transition(state, action) == expected


@pytest.mark.parametrize(
    "state, action, code, http_status",
    [
        ("submitted", WorkloadAction.submit, "ALREADY_SUBMITTED", 409),
        ("approved", WorkloadAction.submit, "ALREADY_APPROVED", 409),
        ("pending", WorkloadAction.approve, "NOT_SUBMITTED", 400),
        ("approved", WorkloadAction.approve, "ALREADY_APPROVED", 409),
        ("pending", WorkloadAction.reject, "NOT_SUBMITTED", 400),
        ("approved", WorkloadAction.reject, "ALREADY_APPROVED", 400),
    ],
)
def test_refused_transitions(state, action, code, http_status):
    with pytest.raises(BusinessError) as exc:
        apply_transition(state, action)
    assert exc.value.code == code
    assert exc.value.status_code == http_status


def test_allowed_actions_per_state():
    assert allowed_actions("pending") == ["submit"]
    assert sorted(allowed_actions("submitted")) == ["approve", "reject"]
    assert allowed_actions("approved") == []


async def _assign(client, headers, ts_id, user_id, **extra):
    resp = await client.post(
        f"/api/v1/term-subjects/{ts_id}/lecturers",
        json={"user_id": user_id, **extra},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_submit_then_approve(client, term_subjects, officer_headers, prof_a_headers):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID, is_responsible=True)

    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["workload_approved"] == "submitted"
    assert body["workload_status"] is True

    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/approve-workload", headers=officer_headers)
    assert resp.status_code == 200
    assert resp.json()["workload_approved"] == "approved"

    resp = await client.get(f"/api/v1/term-subjects/{ts_id}/workload-history", headers=officer_headers)
    assert [(e["action"], e["from_status"], e["to_status"]) for e in resp.json()] == [
        ("SUBMIT", "pending", "submitted"),
        ("APPROVE", "submitted", "approved"),
    ]


@pytest.mark.asyncio
async def test_approve_without_submit_fails(client, term_subjects, officer_headers):
    ts_id = term_subjects[2]["id"]
    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/approve-workload", headers=officer_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "NOT_SUBMITTED"


@pytest.mark.asyncio
async def test_double_submit_fails(client, term_subjects, officer_headers, prof_a_headers):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)
    first = await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    assert first.status_code == 200
    second = await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    assert second.status_code == 409
    assert second.json()["detail"]["code"] == "ALREADY_SUBMITTED"


@pytest.mark.asyncio
async def test_reject_after_approve_fails(client, term_subjects, officer_headers, prof_a_headers):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)
    await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    await client.post(f"/api/v1/term-subjects/{ts_id}/approve-workload", headers=officer_headers)

    resp = await client.post(
        f"/api/v1/term-subjects/{ts_id}/reject-workload",
        json={"reason": "too late"},
        headers=officer_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "ALREADY_APPROVED"


@pytest.mark.asyncio
async def test_reject_returns_to_pending_and_keeps_reason_in_history(
    client, term_subjects, officer_headers, prof_a_headers
):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)
    await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)

    resp = await client.post(
        f"/api/v1/term-subjects/{ts_id}/reject-workload",
        json={"reason": "Week 7 hours missing"},
        headers=officer_headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["workload_approved"] == "pending"
    assert "reason" not in body

    history = (await client.get(f"/api/v1/term-subjects/{ts_id}/workload-history", headers=officer_headers)).json()
    assert history[-1]["action"] == "REJECT"
    assert history[-1]["remarks"] == "Week 7 hours missing"

    # can be submitted again after rejection
    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_reject_without_body(client, term_subjects, officer_headers, prof_a_headers):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)
    await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/reject-workload", headers=officer_headers)
    assert resp.status_code == 200
    assert resp.json()["workload_approved"] == "pending"


@pytest.mark.asyncio
async def test_only_assigned_professor_can_submit(client, term_subjects, officer_headers, prof_b_headers):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)
    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_b_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "NOT_ASSIGNED"


@pytest.mark.asyncio
async def test_officer_cannot_submit_or_professor_approve(
    client, term_subjects, officer_headers, prof_a_headers
):
    ts_id = term_subjects[1]["id"]
    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=officer_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "FORBIDDEN"

    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/approve-workload", headers=prof_a_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_unknown_term_subject(client, seed, officer_headers):
    resp = await client.post("/api/v1/term-subjects/999/approve-workload", headers=officer_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "TERM_SUBJECT_NOT_FOUND"


@pytest.mark.asyncio
async def test_override_can_leave_approved(client, term_subjects, officer_headers, prof_a_headers):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)
    await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    await client.post(f"/api/v1/term-subjects/{ts_id}/approve-workload", headers=officer_headers)

    resp = await client.put(
        f"/api/v1/term-subjects/{ts_id}/workload-approval",
        json={"workload_approved": "pending", "remarks": "reopened by registrar"},
        headers=officer_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["workload_approved"] == "pending"

    history = (await client.get(f"/api/v1/term-subjects/{ts_id}/workload-history", headers=officer_headers)).json()
    assert history[-1]["action"] == "OVERRIDE"
    assert history[-1]["from_status"] == "approved"


@pytest.mark.asyncio
async def test_status_board_lists_allowed_actions(client, term, term_subjects, officer_headers, prof_a_headers):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)
    await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)

    resp = await client.get(f"/api/v1/terms/{term['id']}/subjects/status", headers=officer_headers)
    rows = {r["id"]: r for r in resp.json()}
    assert sorted(rows[ts_id]["allowed_workload_actions"]) == ["approve", "reject"]
    assert rows[term_subjects[2]["id"]]["allowed_workload_actions"] == ["submit"]


@pytest.mark.asyncio
async def test_submit_racing_another_submit(client, term_subjects, officer_headers, prof_a_headers, monkeypatch):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)
    real = term_subject_service._apply_workload_state

    async def other_writer_first(db, ts, target, action, actor_id, remarks=None, expected=None):
        await db.execute(
            update(TermSubject)
            .where(TermSubject.id == ts.id)
            .values(workload_approved="submitted")
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return await real(db, ts, target, action, actor_id, remarks=remarks, expected=expected)

    monkeypatch.setattr(term_subject_service, "_apply_workload_state", other_writer_first)
    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "ALREADY_SUBMITTED"

    history = await client.get(f"/api/v1/term-subjects/{ts_id}/workload-history", headers=officer_headers)
    assert history.json() == []


@pytest.mark.asyncio
async def test_transition_lost_without_visible_change(
    client, term_subjects, officer_headers, prof_a_headers, monkeypatch
):
    ts_id = term_subjects[1]["id"]
    await _assign(client, officer_headers, ts_id, PROF_A_ID)

    async def never_applies(db, ts, target, action, actor_id, remarks=None, expected=None):
        return False

    monkeypatch.setattr(term_subject_service, "_apply_workload_state", never_applies)
    resp = await client.post(f"/api/v1/term-subjects/{ts_id}/submit-workload", headers=prof_a_headers)
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "CONCURRENT_MODIFICATION"

    resp = await client.get(f"/api/v1/term-subjects/{ts_id}", headers=officer_headers)
    assert resp.json()["workload_approved"] == "pending"
