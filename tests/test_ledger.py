from datetime import date

import pytest

from tesouraria import config, ledger
from tesouraria.constants import METODO_ESPECIE, TIPO_ENTRADA_PROJETO, TIPO_SAIDA
from tesouraria.errors import AccessDenied, NotFound, ValidationError
from tesouraria.models import Transaction


def _form(**over):
    data = {
        "movimento": "Dízimos - Culto Noite",
        "tipo": "Entrada",
        "valor": "1.500,00",
        "metodo": "Pix",
        "data": "2024-03-03",
        "mes": "",
        "responsavel": "Tesouraria",
    }
    data.update(over)
    return data


# ===================== VALIDAÇÃO =====================
def test_validate_normalizes_fields():
    out = ledger.validate_transaction(_form(tipo="saida", metodo="ESPECIE", valor="R$ 1.234,56"))
    assert out["tipo"] == TIPO_SAIDA
    assert out["metodo"] == METODO_ESPECIE
    assert out["valor"] == 1234.56
    assert out["data"] == date(2024, 3, 3)
    assert out["mes"] == "Março"
    assert out["contribuinte"] is None
    assert "comprovante" not in out


def test_validate_keeps_explicit_competencia():
    # lançamento feito no início de abril, mas referente a março
    out = ledger.validate_transaction(_form(data="01/04/2024", mes="marco"))
    assert out["mes"] == "Março"


def test_validate_collects_errors():
    with pytest.raises(ValidationError) as exc:
        ledger.validate_transaction({"tipo": "Doação", "metodo": "Cheque", "valor": "0", "mes": "Smarch"})
    assert set(exc.value.errors) == {"movimento", "responsavel", "valor", "tipo", "metodo", "data", "mes"}


def test_project_types_require_projeto():
    with pytest.raises(ValidationError) as exc:
        ledger.validate_transaction(_form(tipo=TIPO_ENTRADA_PROJETO))
    assert list(exc.value.errors) == ["projeto"]
    out = ledger.validate_transaction(_form(tipo=TIPO_ENTRADA_PROJETO, projeto="Reforma"))
    assert out["projeto"] == "Reforma"


# ===================== CRUD =====================
def test_save_creates_and_updates(db, admin):
    tx = ledger.save_transaction(db, _form(), admin)
    assert tx.id is not None
    assert float(tx.valor) == 1500.0

    ledger.save_transaction(db, _form(id=tx.id, valor="1600", observacoes="corrigido"), admin)
    again = ledger.get_transaction(db, tx.id)
    assert float(again.valor) == 1600.0
    assert again.observacoes == "corrigido"


def test_update_keeps_comprovante_unless_given(db, admin):
    url = ledger.encode_comprovante(b"\x89PNG...", "image/png")
    tx = ledger.save_transaction(db, _form(comprovante=url), admin)
    ledger.save_transaction(db, _form(id=tx.id, movimento="Outro nome"), admin)
    assert ledger.get_transaction(db, tx.id).comprovante == url

    ledger.save_transaction(db, _form(id=tx.id, comprovante=None), admin)
    assert ledger.get_transaction(db, tx.id).comprovante is None


def test_tesoureiro_is_read_only(db, admin, tesoureiro):
    tx = ledger.save_transaction(db, _form(), admin)
    with pytest.raises(AccessDenied):
        ledger.save_transaction(db, _form(), tesoureiro)
    with pytest.raises(AccessDenied):
        ledger.delete_transaction(db, tx.id, tesoureiro)
    with pytest.raises(AccessDenied):
        ledger.import_transactions(db, [_form()], tesoureiro)
    assert len(ledger.list_transactions(db)) == 1


def test_update_and_delete_unknown(db, admin):
    with pytest.raises(NotFound):
        ledger.save_transaction(db, _form(id=42), admin)
    with pytest.raises(NotFound):
        ledger.delete_transaction(db, 42, admin)


def test_delete(db, admin):
    tx = ledger.save_transaction(db, _form(), admin)
    ledger.delete_transaction(db, tx.id, admin)
    assert ledger.get_transaction(db, tx.id) is None


def test_list_newest_first(db, admin):
    a = ledger.save_transaction(db, _form(data="2024-03-01"), admin)
    b = ledger.save_transaction(db, _form(data="2024-03-20"), admin)
    c = ledger.save_transaction(db, _form(data="2024-03-20"), admin)
    assert [t.id for t in ledger.list_transactions(db)] == [c.id, b.id, a.id]


def test_import_transactions(db, admin):
    n = ledger.import_transactions(db, [_form(), _form(movimento="Oferta", valor="200")], admin)
    assert n == 2
    assert db.query(Transaction).count() == 2
    assert ledger.import_transactions(db, [], admin) == 0


# ===================== DATAFRAME / FILTROS =====================
def test_to_dataframe_columns(tx_factory):
    df = ledger.to_dataframe([tx_factory(1, 100.0, data=date(2024, 4, 2), mes="Março", comprovante="data:x")])
    assert list(df.columns) == ledger.COLUMNS
    row = df.iloc[0]
    assert row["competencia"] == date(2024, 3, 1)
    assert row["mes_num"] == 3 and row["ano"] == 2024
    assert bool(row["tem_comprovante"]) is True


def test_to_dataframe_empty():
    df = ledger.to_dataframe([])
    assert df.empty
    assert list(df.columns) == ledger.COLUMNS


def test_filter_transactions(tx_factory, df_factory):
    df = df_factory(
        tx_factory(1, 100.0, movimento="Dízimo Ana", data=date(2024, 3, 1)),
        tx_factory(2, 50.0, tipo=TIPO_SAIDA, movimento="Conta de luz", data=date(2024, 3, 15), metodo=METODO_ESPECIE),
        tx_factory(3, 70.0, movimento="Oferta", responsavel="Pedro", data=date(2024, 4, 1)),
        tx_factory(14, 30.0, tipo=TIPO_ENTRADA_PROJETO, projeto="Reforma", data=date(2024, 4, 5)),
    )
    assert list(ledger.filter_transactions(df, "LUZ")["id"]) == [2]
    assert list(ledger.filter_transactions(df, "pedro")["id"]) == [3]
    assert list(ledger.filter_transactions(df, "reforma")["id"]) == [14]
    assert list(ledger.filter_transactions(df, "14")["id"]) == [14]
    assert list(ledger.filter_transactions(df, tipo=TIPO_SAIDA)["id"]) == [2]
    assert list(ledger.filter_transactions(df, metodo=METODO_ESPECIE)["id"]) == [2]
    assert list(ledger.filter_transactions(df, tipo=ledger.TODOS)["id"]) == [1, 2, 3, 14]
    # intervalo inclusivo nas duas pontas
    got = ledger.filter_transactions(df, start=date(2024, 3, 15), end=date(2024, 4, 1))
    assert list(got["id"]) == [2, 3]


def test_paginate(tx_factory, df_factory):
    df = df_factory(*[tx_factory(i, 10.0) for i in range(1, 13)])
    page, n, total = ledger.paginate(df, 2, 5)
    assert (n, total) == (2, 3)
    assert list(page["id"]) == [6, 7, 8, 9, 10]

    page, n, total = ledger.paginate(df, 9, 5)
    assert (n, total) == (3, 3)
    assert list(page["id"]) == [11, 12]

    page, n, total = ledger.paginate(df.iloc[0:0], 1, 10)
    assert page.empty and (n, total) == (1, 0)


# ===================== COMPROVANTE =====================
def test_comprovante_encode_decode():
    url = ledger.encode_comprovante(b"%PDF-1.4", "application/pdf")
    assert url.startswith("data:application/pdf;base64,")
    assert ledger.decode_comprovante(url) == ("application/pdf", b"%PDF-1.4")
    assert ledger.decode_comprovante(None) is None
    assert ledger.decode_comprovante("data:image/png;base64,@@@") is None


def test_comprovante_rejects_bad_files(monkeypatch):
    with pytest.raises(ValidationError):
        ledger.encode_comprovante(b"abc", "text/plain")
    with pytest.raises(ValidationError):
        ledger.encode_comprovante(b"", "image/png")
    monkeypatch.setattr(config, "MAX_COMPROVANTE_MB", 1)
    with pytest.raises(ValidationError):
        ledger.encode_comprovante(b"x" * (1024 * 1024 + 1), "image/jpeg")
