import pytest

from fakes import FakeOperatorRepo, admin, employee
from models.operator import Operator, Role
from services.account_service import AccountService, parse_role, validate_username
from utils.errors import AuthorizationError, NotFoundError, ValidationError


@pytest.fixture
def repo():
    return FakeOperatorRepo([
        admin(),
        Operator(telegram_id=300, username="backend", role=Role.BACKEND_ADMIN),
        employee(),
    ])


@pytest.fixture
def service(repo):
    return AccountService(repo, bootstrap_admin_ids=[999])


def test_role_precedence():
    assert Role.highest([Role.EMPLOYEE, Role.BACKEND_ADMIN, Role.ADMIN]) == Role.BACKEND_ADMIN
    assert Role.highest([]) is None


@pytest.mark.parametrize("name, expected", [("Alice", "alice"), ("abcde", "abcde"), ("ABCDEFGHIJ", "abcdefghij")])
def test_validate_username(name, expected):
    assert validate_username(name) == expected


@pytest.mark.parametrize("name", ["abcd", "abcdefghijk", "alice1", "al ice", "", None])
def test_validate_username_rejects(name):
    with pytest.raises(ValidationError):
        validate_username(name)


def test_parse_role():
    assert parse_role(None) == Role.EMPLOYEE
    assert parse_role(" Admin ") == Role.ADMIN
    with pytest.raises(ValidationError):
        parse_role("owner")


def test_get_operator(service):
    assert service.get_operator(300).role == Role.BACKEND_ADMIN
    assert service.get_operator(12345) is None


def test_bootstrap_admin_without_account(service):
    operator = service.get_operator(999)
    assert operator.role == Role.ADMIN
    assert operator.username == "admin"


def test_bootstrap_never_downgrades(repo):
    service = AccountService(repo, bootstrap_admin_ids=[300, 100])
    assert service.get_operator(300).role == Role.BACKEND_ADMIN
    assert service.get_operator(100).role == Role.ADMIN


def test_create_operator(service, repo):
    created = service.create_operator(admin(), 400, "Carole", "backend_admin")
    assert created.username == "carole"
    assert repo.rows[400].role == Role.BACKEND_ADMIN


def test_create_operator_defaults_to_employee(service):
    assert service.create_operator(admin(), 401, "daniel").role == Role.EMPLOYEE


def test_create_operator_requires_admin(service):
    with pytest.raises(AuthorizationError):
        service.create_operator(employee(), 402, "eliane")


def test_create_operator_rejects_duplicates(service):
    with pytest.raises(ValidationError):
        service.create_operator(admin(), 403, "Alice")
    with pytest.raises(ValidationError):
        service.create_operator(admin(), 100, "fresh")


def test_set_role(service, repo):
    updated = service.set_role(admin(), "alice", "admin")
    assert updated.role == Role.ADMIN
    assert repo.rows[100].role == Role.ADMIN


def test_set_role_unknown_user(service):
    with pytest.raises(NotFoundError):
        service.set_role(admin(), "nobody", "admin")


def test_set_role_requires_admin(service):
    with pytest.raises(AuthorizationError):
        service.set_role(employee(), "alice", "admin")


def test_operators_with_role(service):
    assert [o.username for o in service.operators_with_role(Role.BACKEND_ADMIN)] == ["backend"]


@pytest.mark.parametrize("role, required, allowed", [
    (Role.EMPLOYEE, Role.EMPLOYEE, True),
    (Role.EMPLOYEE, Role.ADMIN, False),
    (Role.EMPLOYEE, Role.BACKEND_ADMIN, False),
    (Role.ADMIN, Role.EMPLOYEE, True),
    (Role.ADMIN, Role.ADMIN, True),
    (Role.ADMIN, Role.BACKEND_ADMIN, False),
    (Role.BACKEND_ADMIN, Role.EMPLOYEE, True),
    (Role.BACKEND_ADMIN, Role.BACKEND_ADMIN, True),
    (Role.BACKEND_ADMIN, Role.ADMIN, False),
])
def test_role_access(role, required, allowed):
    assert role.satisfies(required) is allowed


def _backend_admin():
    return Operator(telegram_id=300, username="backend", role=Role.BACKEND_ADMIN)


def test_backend_admin_cannot_create_operators(service, repo):
    with pytest.raises(AuthorizationError):
        service.create_operator(_backend_admin(), 500, "newbie", "admin")
    assert 500 not in repo.rows


def test_backend_admin_cannot_change_roles(service, repo):
    with pytest.raises(AuthorizationError):
        service.set_role(_backend_admin(), "alice", "admin")
    assert repo.rows[100].role == Role.EMPLOYEE
