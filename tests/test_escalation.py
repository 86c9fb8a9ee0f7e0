from datetime import timedelta

from sqlalchemy import update

from iris_api.extensions import db
from iris_api.models.absence import AbsenceRequest, EscalationLog
from iris_api.repositories.absence import AbsenceRequestRepository
from iris_api.services.escalation_service import EscalationService

from conftest import NOW


def _reload(req_id):
    db.session.expire_all()
    return db.session.get(AbsenceRequest, req_id)


def _logs(req_id):
    return EscalationLog.query.filter_by(absence_request_id=req_id).all()


def test_stale_request_is_escalated_one_stage(app, factory):
    emp = factory.employee(factory.company(), collar_type="blue_collar")
    req = factory.request(emp, idle_hours=25)
    old = req.last_action_at

    result = EscalationService().process_pending_escalations(now=NOW)
    assert (result.scanned, result.escalated, result.skipped, result.conflicts) == (1, 1, 0, 0)

    fresh = _reload(req.id)
    assert fresh.current_approval_stage == "MANAGER"
    assert fresh.escalation_count == 1
    assert fresh.is_escalated is True
    assert fresh.last_action_at > old
    assert fresh.version == 2

    logs = _logs(req.id)
    assert len(logs) == 1
    assert (logs[0].from_stage, logs[0].to_stage) == ("SUPERVISOR", "MANAGER")
    assert logs[0].previous_action_at == old
    assert logs[0].reason == "24 hours without approval"


def test_recent_request_is_left_alone(app, factory):
    emp = factory.employee(factory.company())
    req = factory.request(emp, idle_hours=5)

    result = EscalationService().process_pending_escalations(now=NOW)
    assert result.scanned == 0 and result.escalated == 0

    fresh = _reload(req.id)
    assert fresh.current_approval_stage == "SUPERVISOR"
    assert fresh.escalation_count == 0
    assert fresh.is_escalated is False
    assert _logs(req.id) == []


def test_threshold_is_inclusive(app, factory):
    emp = factory.employee(factory.company())
    req = factory.request(emp, idle_hours=24)

    EscalationService().process_pending_escalations(now=NOW)
    assert _reload(req.id).current_approval_stage == "MANAGER"


def test_sweep_twice_does_not_double_escalate(app, factory):
    emp = factory.employee(factory.company())
    req = factory.request(emp, idle_hours=30)
    svc = EscalationService()

    first = svc.process_pending_escalations(now=NOW)
    second = svc.process_pending_escalations(now=NOW + timedelta(seconds=1))

    assert first.escalated == 1
    assert second.escalated == 0
    fresh = _reload(req.id)
    assert fresh.escalation_count == 1
    assert fresh.current_approval_stage == "MANAGER"
    assert len(_logs(req.id)) == 1


def test_hr_routing_depends_on_collar(app, factory):
    company = factory.company()
    white = factory.request(factory.employee(company, collar_type="white_collar"), stage="HR", idle_hours=25)
    gray = factory.request(factory.employee(company, collar_type="gray_collar"), stage="HR", idle_hours=25)

    EscalationService().process_pending_escalations(now=NOW)

    assert _reload(white.id).current_approval_stage == "GENERAL_MANAGER"
    assert _reload(gray.id).current_approval_stage == "PAYROLL"


def test_payroll_stage_is_skipped_not_completed(app, factory):
    emp = factory.employee(factory.company())
    req = factory.request(emp, stage="PAYROLL", idle_hours=48)

    result = EscalationService().process_pending_escalations(now=NOW)

    assert result.skipped == 1 and result.escalated == 0
    assert result.items[0].detail == "final stage"
    fresh = _reload(req.id)
    assert fresh.current_approval_stage == "PAYROLL"
    assert fresh.status == "PENDING"


def test_decided_requests_are_not_scanned(app, factory):
    emp = factory.employee(factory.company())
    factory.request(emp, status="DECLINED", stage="COMPLETED", idle_hours=100)
    factory.request(emp, status="APPROVED", stage="COMPLETED", idle_hours=100)

    result = EscalationService().process_pending_escalations(now=NOW)
    assert result.scanned == 0


def test_one_bad_request_does_not_stop_the_sweep(app, factory):
    company = factory.company()
    broken = factory.request(factory.employee(company, collar_type="purple_collar"), idle_hours=25)
    good = factory.request(factory.employee(company), idle_hours=25)

    result = EscalationService().process_pending_escalations(now=NOW)

    assert result.scanned == 2
    assert result.escalated == 1
    assert result.skipped == 1
    assert _reload(broken.id).current_approval_stage == "SUPERVISOR"
    assert _reload(good.id).current_approval_stage == "MANAGER"


def test_sweep_loses_race_to_human_approval(app, factory, monkeypatch):
    emp = factory.employee(factory.company())
    req = factory.request(emp, idle_hours=25)
    svc = EscalationService()
    read = svc.requests.stale_pending

    def read_then_human_acts(cutoff):
        rows = read(cutoff)
        # supervisor approves between the sweep's read and its write
        db.session.execute(
            update(AbsenceRequest)
            .where(AbsenceRequest.id == req.id)
            .values(current_approval_stage="MANAGER", last_action_at=NOW, version=AbsenceRequest.version + 1)
        )
        db.session.commit()
        return rows

    monkeypatch.setattr(svc.requests, "stale_pending", read_then_human_acts)
    result = svc.process_pending_escalations(now=NOW)

    assert result.conflicts == 1
    assert result.escalated == 0
    fresh = _reload(req.id)
    assert fresh.current_approval_stage == "MANAGER"
    assert fresh.escalation_count == 0
    assert _logs(req.id) == []


def test_compare_and_set_rejects_stale_version(app, factory):
    emp = factory.employee(factory.company())
    req = factory.request(emp, idle_hours=25)
    repo = AbsenceRequestRepository()

    assert repo.compare_and_set(req.id, 1, {"current_approval_stage": "MANAGER"}) is True
    assert repo.compare_and_set(req.id, 1, {"current_approval_stage": "HR"}) is False
    db.session.commit()
    assert _reload(req.id).current_approval_stage == "MANAGER"


def test_history_is_ordered_oldest_first(app, factory):
    emp = factory.employee(factory.company(), collar_type="white_collar")
    req = factory.request(emp, idle_hours=25)
    svc = EscalationService()

    svc.process_pending_escalations(now=NOW)
    svc.process_pending_escalations(now=NOW + timedelta(hours=25))

    history = svc.get_escalation_history(req.id)
    assert [(h.from_stage, h.to_stage) for h in history] == [("SUPERVISOR", "MANAGER"), ("MANAGER", "HR")]
    assert history[0].escalated_at < history[1].escalated_at
    assert _reload(req.id).escalation_count == 2


def test_history_is_empty_for_never_escalated(app, factory):
    emp = factory.employee(factory.company())
    req = factory.request(emp, idle_hours=1)
    assert EscalationService().get_escalation_history(req.id) == []


def test_threshold_comes_from_config(app, factory):
    app.config["ESCALATION_THRESHOLD_HOURS"] = 4
    emp = factory.employee(factory.company())
    req = factory.request(emp, idle_hours=5)

    EscalationService().process_pending_escalations(now=NOW)
    assert _reload(req.id).current_approval_stage == "MANAGER"
