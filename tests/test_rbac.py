import pytest

from campusvote.authentication.rbac import Permission, RBACService, UserRole


@pytest.fixture
def rbac():
    return RBACService()


@pytest.mark.parametrize("permission", [
    Permission.MANAGE_ELECTIONS,
    Permission.MANAGE_CANDIDATES,
    Permission.VIEW_STUDENTS,
    Permission.VIEW_LOGIN_LOGS,
    Permission.VIEW_AUDIT_LOG,
])
def test_admin_only_permissions(rbac, permission):
    assert rbac.has_permission(UserRole.ADMIN, permission) is True
    assert rbac.has_permission(UserRole.STUDENT, permission) is False


def test_students_vote_admins_do_not(rbac):
    assert rbac.has_permission('student', Permission.VOTE) is True
    assert rbac.has_permission('admin', Permission.VOTE) is False


def test_shared_permissions(rbac):
    for role in ('admin', 'student'):
        assert rbac.has_permission(role, 'view_vote_status') is True
        assert rbac.has_permission(role, 'reverse_vote') is True


def test_unknown_role_or_permission(rbac):
    assert rbac.has_permission('superuser', Permission.VOTE) is False
    assert rbac.has_permission('', Permission.VOTE) is False
    assert rbac.has_permission('admin', 'launch_missiles') is False


def test_role_strings_are_normalized(rbac):
    assert rbac.has_permission(' Admin ', Permission.MANAGE_ELECTIONS) is True

