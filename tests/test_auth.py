import time

import pytest

from tesouraria import auth, config
from tesouraria.constants import ROLE_ADMIN, ROLE_TESOUREIRO
from tesouraria.errors import AccessDenied, NotFound, ValidationError
from tesouraria.models import Transaction, User


def test_password_hash_roundtrip():
    h = auth.hash_password("123456")
    assert ":" in h
    assert auth.verify_password("123456", h)
    assert not auth.verify_password("654321", h)
    assert not auth.verify_password("123456", "")
    assert not auth.verify_password("123456", "zz:zz")


def test_token_signed_and_expiring():
    tok = auth.make_token({"uid": 7})
    assert auth.read_token(tok)["uid"] == 7

    body, sig = tok.rsplit(".", 1)
    assert auth.read_token(f"{body}.{'0' * len(sig)}") is None
    assert auth.read_token("lixo") is None
    assert auth.read_token(None) is None

    expired = auth.make_token({"uid": 7}, exp_days=-1)
    assert auth.read_token(expired) is None


def test_roles(admin, tesoureiro):
    assert auth.is_admin(admin) and auth.can_edit(admin)
    assert not auth.is_admin(tesoureiro) and not auth.can_edit(tesoureiro)
    assert not auth.can_edit(None)
    with pytest.raises(AccessDenied):
        auth.require_admin(tesoureiro)


def test_authenticate_case_insensitive(db, admin):
    assert auth.authenticate(db, "ADMIN@3ipi.com ", "segredo1").id == admin.id
    assert auth.authenticate(db, "admin@3ipi.com", "errada") is None
    assert auth.authenticate(db, "ninguem@3ipi.com", "segredo1") is None


def test_self_signup_creates_tesoureiro(db):
    u = auth.register_user(db, "João da Silva", "Joao@3IPI.com", "abcdef", confirm="abcdef")
    assert u.role == ROLE_TESOUREIRO
    assert u.email == "joao@3ipi.com"


def test_self_signup_cannot_create_admin(db):
    with pytest.raises(AccessDenied):
        auth.register_user(db, "Intruso", "intruso@3ipi.com", "abcdef", role=ROLE_ADMIN)


def test_register_validation_messages(db, admin):
    with pytest.raises(ValidationError) as exc:
        auth.register_user(db, "Jo", "sem-arroba", "123", confirm="321")
    assert set(exc.value.errors) == {"name", "email", "password", "confirm"}

    with pytest.raises(ValidationError) as exc:
        auth.register_user(db, "Outro Admin", "admin@3ipi.com", "abcdef")
    assert "email" in exc.value.errors


def test_admin_creates_and_tesoureiro_cannot(db, admin, tesoureiro):
    novo = auth.register_user(db, "Segundo Admin", "adm2@3ipi.com", "abcdef", role=ROLE_ADMIN, actor=admin)
    assert novo.role == ROLE_ADMIN
    with pytest.raises(AccessDenied):
        auth.register_user(db, "Qualquer", "q@3ipi.com", "abcdef", actor=tesoureiro)


def test_delete_user_rules(db, admin, tesoureiro):
    with pytest.raises(ValidationError):
        auth.delete_user(db, admin.id, admin)
    with pytest.raises(AccessDenied):
        auth.delete_user(db, admin.id, tesoureiro)
    with pytest.raises(NotFound):
        auth.delete_user(db, 999, admin)

    auth.delete_user(db, tesoureiro.id, admin)
    assert db.get(User, tesoureiro.id) is None


def test_last_admin_is_protected(db, admin):
    outro = auth.register_user(db, "Segundo Admin", "adm2@3ipi.com", "abcdef", role=ROLE_ADMIN, actor=admin)
    auth.delete_user(db, admin.id, outro)

    # sessão antiga de um admin já removido
    fantasma = User(id=999, name="Antigo", email="antigo@3ipi.com", password_hash="", role=ROLE_ADMIN)
    with pytest.raises(ValidationError) as exc:
        auth.delete_user(db, outro.id, fantasma)
    assert "administrador" in exc.value.errors["user"]
    assert db.get(User, outro.id) is not None


def test_list_users_search(db, admin, tesoureiro):
    assert [u.email for u in auth.list_users(db)] == ["admin@3ipi.com", "maria@3ipi.com"]
    assert [u.email for u in auth.list_users(db, "MARIA")] == ["maria@3ipi.com"]


def test_ensure_seed_creates_admin_once(db, monkeypatch):
    monkeypatch.setattr(config, "SEED_SAMPLE_DATA", True)
    auth.ensure_seed(db)
    auth.ensure_seed(db)
    admins = [u for u in auth.list_users(db) if u.role == ROLE_ADMIN]
    assert len(admins) == 1
    assert admins[0].email == config.ADMIN_EMAIL
    assert auth.authenticate(db, config.ADMIN_EMAIL, config.ADMIN_PASSWORD) is not None
    assert db.query(Transaction).count() == 3


def test_audit_logs(caplog, admin):
    with caplog.at_level("INFO", logger="tesouraria"):
        auth.audit(admin, "teste", "detalhe")
    assert "AUDIT | admin@3ipi.com | teste | detalhe" in caplog.text


def test_token_exp_in_future():
    data = auth.read_token(auth.make_token({"uid": 1}, exp_days=1))
    assert data["exp"] > time.time()
