# campusvote/authentication/rbac.py

from enum import Enum
from functools import wraps
from flask import abort
from flask_jwt_extended import get_jwt, verify_jwt_in_request

# Role-Based Access Control (RBAC) over JWT role claims


class UserRole(Enum):
    ADMIN = "admin"
    STUDENT = "student"


class Permission(Enum):
    MANAGE_ELECTIONS = "manage_elections"
    MANAGE_CANDIDATES = "manage_candidates"
    VIEW_STUDENTS = "view_students"
    VIEW_LOGIN_LOGS = "view_login_logs"
    VIEW_AUDIT_LOG = "view_audit_log"
    VOTE = "vote"
    VIEW_VOTE_STATUS = "view_vote_status"
    REVERSE_VOTE = "reverse_vote"


# Role -> Permissions mapping
ROLE_PERMISSIONS = {
    UserRole.ADMIN: [
        Permission.MANAGE_ELECTIONS,
        Permission.MANAGE_CANDIDATES,
        Permission.VIEW_STUDENTS,
        Permission.VIEW_LOGIN_LOGS,
        Permission.VIEW_AUDIT_LOG,
        Permission.VIEW_VOTE_STATUS,
        Permission.REVERSE_VOTE,
    ],
    UserRole.STUDENT: [
        Permission.VOTE,
        Permission.VIEW_VOTE_STATUS,
        Permission.REVERSE_VOTE,
    ],
}


class RBACService:
    def has_permission(self, user_role, permission):
        try:
            if isinstance(user_role, str):
                user_role = UserRole(user_role.lower().strip())
            if isinstance(permission, str):
                permission = Permission(permission)
        except ValueError:
            return False
        return permission in ROLE_PERMISSIONS.get(user_role, [])


rbac_service = RBACService()


def current_role():
    return str(get_jwt().get('role', '')).lower()


def is_admin():
    return current_role() == UserRole.ADMIN.value


def ensure_student_scope(student_id):
    """Students may only act on their own studentId; admins on any."""
    if is_admin():
        return
    if str(get_jwt().get('studentId')) != str(student_id):
        abort(403, description='You can only access your own voting records')


# Decorator for required permission
def require_permission(permission):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not rbac_service.has_permission(current_role(), permission):
                abort(403, description='Access denied: insufficient permissions')
            return func(*args, **kwargs)
        return wrapper
    return decorator
