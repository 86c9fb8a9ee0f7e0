from flask import Blueprint, request

from iris_api.common.auth import requires_perms, current_user_id
from iris_api.common.errors import InvalidInputError
from iris_api.common.http import ok
from iris_api.common.paging import page_limit, page_meta
from iris_api.services.prenomina_service import PrenominaService, metric_to_dict

bp = Blueprint("prenomina", __name__, url_prefix="/api/v1/prenomina")


def _body():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}


def _int(data, key):
    try:
        return int(data.get(key))
    except (TypeError, ValueError):
        raise InvalidInputError(f"{key} is required and must be an integer")


@bp.post("/calculate")
@requires_perms("prenomina.calculate")
def calculate():
    data = _body()
    metric = PrenominaService().calculate_prenomina(
        _int(data, "employee_id"),
        _int(data, "payroll_period_id"),
        recalculate_sdi=bool(data.get("calculate_sdi")),
        actor_id=current_user_id(),
    )
    return ok(metric_to_dict(metric))


@bp.post("/bulk-calculate")
@requires_perms("prenomina.calculate")
def bulk_calculate():
    data = _body()
    ids = data.get("employee_ids") or []
    if not isinstance(ids, list):
        raise InvalidInputError("employee_ids must be a list")
    report = PrenominaService().bulk_calculate_prenomina(
        _int(data, "payroll_period_id"),
        employee_ids=ids,
        calculate_all=bool(data.get("calculate_all")),
        actor_id=current_user_id(),
    )
    return ok(report.to_dict())


@bp.post("/approve")
@requires_perms("prenomina.approve")
def approve():
    data = _body()
    metric = PrenominaService().approve_prenomina(
        _int(data, "employee_id"), _int(data, "payroll_period_id"), actor_id=current_user_id())
    return ok(metric_to_dict(metric))


@bp.get("/<int:employee_id>/<int:period_id>")
@requires_perms("prenomina.view")
def get_metrics(employee_id: int, period_id: int):
    return ok(metric_to_dict(PrenominaService().get_prenomina_metrics(employee_id, period_id)))


@bp.get("/period/<int:period_id>")
@requires_perms("prenomina.view")
def list_for_period(period_id: int):
    page, size = page_limit()
    items, total = PrenominaService().list_prenomina_metrics(period_id, page, size)
    return ok([metric_to_dict(m) for m in items], **page_meta(page, size, total))
