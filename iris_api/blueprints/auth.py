from datetime import timedelta

from flask import Blueprint, request
from flask_jwt_extended import create_access_token, create_refresh_token, jwt_required

from iris_api.common.auth import collect_perms_from_db, current_user_id
from iris_api.common.http import ok, fail
from iris_api.extensions import db
from iris_api.models.user import User

bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _user_payload(u: User):
    return {"id": u.id, "email": u.email, "full_name": u.full_name, "company_id": u.company_id,
            "roles": u.role_codes()}


def _claims(u: User) -> dict:
    return {"roles": u.role_codes(), "perms": sorted(collect_perms_from_db(u.id)), "email": u.email}


@bp.post("/login")
def login():
    data = request.get_json(silent=True, force=True)
    if not isinstance(data, dict):
        data = {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    u = db.session.query(User).filter_by(email=email).first()
    if not u or not u.check_password(password):
        return fail("Invalid credentials", status=401)
    if u.status != "active":
        return fail("User is not active", status=403)

    claims = _claims(u)
    access = create_access_token(identity=str(u.id), additional_claims=claims, expires_delta=timedelta(days=1))
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"roles": claims["roles"]})
    return ok({"access": access, "refresh": refresh, "user": _user_payload(u)})


@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    uid = current_user_id()
    u = db.session.get(User, uid) if uid else None
    if not u:
        return fail("User not found", status=404)
    return ok({"access": create_access_token(identity=str(u.id), additional_claims=_claims(u))})


@bp.get("/me")
@jwt_required()
def me():
    uid = current_user_id()
    u = db.session.get(User, uid) if uid else None
    if not u:
        return fail("User not found", status=404)
    return ok(_user_payload(u))
