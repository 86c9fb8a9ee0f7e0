# iris_api/seed_rbac.py
"""Idempotent roles/permissions seed (``flask seed-rbac``)."""
from iris_api.extensions import db
from iris_api.models.security import Role, Permission, RolePermission, UserRole
from iris_api.models.user import User

DEFAULT_ROLES = [
    ("admin", "Administrator"),
    ("supervisor", "Supervisor"),
    ("manager", "Manager"),
    ("hr_blue_gray", "HR (blue/gray collar)"),
    ("hr_white", "HR (white collar)"),
    ("gm", "General Manager"),
    ("payroll", "Payroll"),
    ("employee", "Employee"),
]

DEFAULT_PERMS = [
    # Absence requests
    "absence.request.create", "absence.request.read", "absence.request.approve",
    "absence.escalation.run",

    # Prenomina
    "prenomina.view", "prenomina.calculate", "prenomina.approve",
]

_APPROVER = ["absence.request.read", "absence.request.approve"]

ROLE_PERM_MAP = {
    "admin": DEFAULT_PERMS,
    "supervisor": _APPROVER,
    "manager": _APPROVER,
    "hr_blue_gray": _APPROVER + ["absence.request.create", "prenomina.view"],
    "hr_white": _APPROVER + ["absence.request.create", "prenomina.view"],
    "gm": _APPROVER + ["prenomina.view"],
    "payroll": _APPROVER + [
        "absence.escalation.run",
        "prenomina.view", "prenomina.calculate", "prenomina.approve",
    ],
    "employee": ["absence.request.create", "absence.request.read"],
}


def _ensure_roles():
    code_to_role = {}
    for code, name in DEFAULT_ROLES:
        r = Role.query.filter_by(code=code).first()
        if not r:
            r = Role(code=code, name=name)
            db.session.add(r)
            db.session.flush()
        code_to_role[code] = r
    return code_to_role


def _ensure_permissions():
    code_to_perm = {}
    for code in DEFAULT_PERMS:
        p = Permission.query.filter_by(code=code).first()
        if not p:
            p = Permission(code=code, name=code.replace(".", " ").title())
            db.session.add(p)
            db.session.flush()
        code_to_perm[code] = p
    return code_to_perm


def _map_role_perms(code_to_role, code_to_perm):
    added = 0
    for rcode, perms in ROLE_PERM_MAP.items():
        r = code_to_role[rcode]
        existing = {rp.permission_id for rp in r.permissions}
        for pcode in perms:
            p = code_to_perm[pcode]
            if p.id not in existing:
                db.session.add(RolePermission(role_id=r.id, permission_id=p.id))
                existing.add(p.id)
                added += 1
    return added


def grant_role(email: str, role_code: str) -> bool:
    """Attach ``role_code`` to the user; False when user or role is missing."""
    user = User.query.filter_by(email=email.strip().lower()).first()
    role = Role.query.filter_by(code=role_code).first()
    if not user or not role:
        return False
    if not any(ur.role_id == role.id for ur in user.user_roles):
        db.session.add(UserRole(user_id=user.id, role_id=role.id))
    db.session.commit()
    return True


def run():
    code_to_role = _ensure_roles()
    code_to_perm = _ensure_permissions()
    mapped = _map_role_perms(code_to_role, code_to_perm)
    db.session.commit()
    return {"ok": True, "roles": len(DEFAULT_ROLES), "perms": len(DEFAULT_PERMS), "mapped": mapped}
