from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tesouraria import auth, ledger
from tesouraria.constants import METODO_PIX, MONTHS, ROLE_ADMIN, ROLE_TESOUREIRO, TIPO_ENTRADA
from tesouraria.db import init_db
from tesouraria.models import Transaction, User


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)
    with Session() as session:
        yield session
    engine.dispose()


def _user(db, name, email, role):
    u = User(name=name, email=email, password_hash=auth.hash_password("segredo1"), role=role)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture
def admin(db):
    return _user(db, "Administrador", "admin@3ipi.com", ROLE_ADMIN)


@pytest.fixture
def tesoureiro(db):
    return _user(db, "Maria Tesoureira", "maria@3ipi.com", ROLE_TESOUREIRO)


def make_tx(id, valor, tipo=TIPO_ENTRADA, data=date(2024, 3, 10), metodo=METODO_PIX, mes=None, **extra):
    """Lançamento transiente (fora do banco), para montar DataFrames nos testes."""
    fields = dict(
        id=id,
        movimento=extra.pop("movimento", f"Lançamento {id}"),
        tipo=tipo,
        valor=valor,
        metodo=metodo,
        data=data,
        mes=mes or MONTHS[data.month - 1],
        responsavel=extra.pop("responsavel", "Tesouraria"),
    )
    fields.update(extra)
    return Transaction(**fields)


def make_df(*txs):
    return ledger.to_dataframe(txs)


@pytest.fixture
def tx_factory():
    return make_tx


@pytest.fixture
def df_factory():
    return make_df
