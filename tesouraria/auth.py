# tesouraria/auth.py
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import os
import re
import time
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import config
from .constants import ROLE_ADMIN, ROLE_TESOUREIRO, ROLES, SAMPLE_TRANSACTIONS
from .errors import AccessDenied, NotFound, ValidationError
from .models import Transaction, User

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PBKDF2_ITERATIONS = 100_000


# ===================== HASH =====================
def hash_password(password: str) -> str:
    salt = os.urandom(16)
    pwdhash = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return salt.hex() + ":" + pwdhash.hex()


def verify_password(password: str, stored_hash: str) -> bool:
    """Confere senha contra 'salt_hex:hash_hex' (PBKDF2)."""
    if not stored_hash or ":" not in stored_hash:
        return False
    try:
        salt_hex, pwdhash_hex = stored_hash.split(":", 1)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(pwdhash_hex)
    except ValueError:
        return False
    calc = hashlib.pbkdf2_hmac("sha256", (password or "").encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(calc, expected)


# ===================== TOKEN (cookie) =====================
def _sign(body: str) -> str:
    return hmac.new(config.APP_SECRET.encode(), body.encode(), hashlib.sha256).hexdigest()


def make_token(payload: dict, exp_days: int = config.SESSION_DAYS) -> str:
    data = payload.copy()
    data["exp"] = int(time.time()) + exp_days * 24 * 3600
    js = json.dumps(data, separators=(",", ":")).encode()
    b = base64.urlsafe_b64encode(js).decode()
    return f"{b}.{_sign(b)}"


def read_token(tok: Optional[str]) -> Optional[dict]:
    if not tok or "." not in tok:
        return None
    b, sig = tok.rsplit(".", 1)
    if not hmac.compare_digest(sig.encode(), _sign(b).encode()):
        return None
    try:
        data = json.loads(base64.urlsafe_b64decode(b.encode()))
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict) or int(data.get("exp", 0)) < int(time.time()):
        return None
    return data


# ===================== PAPÉIS =====================
def is_admin(user: Optional[User]) -> bool:
    return getattr(user, "role", None) == ROLE_ADMIN


def can_edit(user: Optional[User]) -> bool:
    """Só o Administrador lança, edita e exclui; o Tesoureiro apenas consulta."""
    return is_admin(user)


def require_admin(user: Optional[User]) -> None:
    if not is_admin(user):
        raise AccessDenied("Acesso restrito ao Administrador.")


def audit(user: Optional[User], acao: str, detalhe: str = "") -> None:
    quem = getattr(user, "email", None) or "-"
    logger.info("AUDIT | %s | %s | %s", quem, acao, detalhe)


# ===================== USUÁRIOS =====================
def _clean_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(func.lower(User.email) == _clean_email(email)))


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("AUDIT | %s | login_falhou | ", _clean_email(email) or "-")
        return None
    audit(user, "login")
    return user


def validate_user_form(
    db: Session, name: str, email: str, password: str, confirm: Optional[str] = None
) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if len((name or "").strip()) < 3:
        errors["name"] = "O nome deve ter pelo menos 3 caracteres."
    email_c = _clean_email(email)
    if not EMAIL_RE.match(email_c):
        errors["email"] = "Insira um formato de e-mail válido."
    elif get_user_by_email(db, email_c) is not None:
        errors["email"] = "Este e-mail já está cadastrado no sistema."
    if len(password or "") < 6:
        errors["password"] = "A senha deve ter no mínimo 6 caracteres."
    if confirm is not None and password != confirm:
        errors["confirm"] = "As senhas não coincidem."
    return errors


def register_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: str = ROLE_TESOUREIRO,
    confirm: Optional[str] = None,
    actor: Optional[User] = None,
) -> User:
    """Cria um usuário.

    Sem `actor` é o autocadastro da tela de login: só gera Tesoureiro (somente leitura).
    Com `actor`, é a tela de Usuários e exige Administrador.
    """
    if role not in ROLES:
        raise ValidationError({"role": "Perfil inválido."})
    if actor is not None or role == ROLE_ADMIN:
        require_admin(actor)

    errors = validate_user_form(db, name, email, password, confirm)
    if errors:
        raise ValidationError(errors)

    user = User(
        name=name.strip(),
        email=_clean_email(email),
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError({"email": "Este e-mail já está cadastrado no sistema."})
    db.refresh(user)
    audit(actor or user, "usuario_criado", f"{user.email} ({user.role})")
    return user


def delete_user(db: Session, user_id: int, actor: User) -> None:
    require_admin(actor)
    if user_id == actor.id:
        raise ValidationError({"user": "Você não pode excluir seu próprio acesso de administrador."})
    target = db.get(User, user_id)
    if target is None:
        raise NotFound(f"Usuário {user_id} não encontrado.")
    if target.role == ROLE_ADMIN:
        admins = db.scalar(select(func.count(User.id)).where(User.role == ROLE_ADMIN)) or 0
        if admins <= 1:
            raise ValidationError({"user": "O sistema precisa de ao menos um administrador."})
    email = target.email
    db.delete(target)
    db.commit()
    audit(actor, "usuario_excluido", email)


def list_users(db: Session, search: str = "") -> List[User]:
    q = select(User).order_by(User.name)
    term = (search or "").strip().lower()
    if term:
        like = f"%{term}%"
        q = q.where(or_(func.lower(User.name).like(like), func.lower(User.email).like(like)))
    return list(db.scalars(q).all())


# ===================== SEED =====================
def ensure_seed(db: Session) -> None:
    if db.scalar(select(User).where(User.role == ROLE_ADMIN)) is None:
        if get_user_by_email(db, config.ADMIN_EMAIL) is None:
            db.add(User(
                name=config.ADMIN_NAME,
                email=_clean_email(config.ADMIN_EMAIL),
                password_hash=hash_password(config.ADMIN_PASSWORD),
                role=ROLE_ADMIN,
            ))
            logger.info("Administrador padrão criado: %s", config.ADMIN_EMAIL)
    if config.SEED_SAMPLE_DATA and not db.scalar(select(func.count(Transaction.id))):
        db.add_all(Transaction(**row) for row in SAMPLE_TRANSACTIONS)
        logger.info("Lançamentos de exemplo inseridos.")
    db.commit()
