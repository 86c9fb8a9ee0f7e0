from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from iris_api.common.http import ok, fail
from iris_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api")


@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return fail("database unavailable", status=503, code="STORAGE_ERROR", detail=str(e))
    return ok({"status": "ok"})
