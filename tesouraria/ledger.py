# tesouraria/ledger.py
from __future__ import annotations

import base64
import binascii
import math
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import config
from .auth import audit, require_admin
from .constants import METODOS, MONTHS, TIPOS, TIPOS_PROJETO
from .errors import NotFound, ValidationError
from .models import Transaction, User
from .utils import month_number, norm, parse_brl, parse_date


COLUMNS = [
    "id", "movimento", "tipo", "valor", "metodo", "data", "mes", "responsavel",
    "contribuinte", "projeto", "observacoes", "tem_comprovante",
    "ano", "mes_num", "competencia",
]

TODOS = "Todos"


# ===================== VALIDAÇÃO =====================
def _clean(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, float) and math.isnan(v):
        return ""
    return str(v).strip()


def _canon(value: str, options: Sequence[str]) -> Optional[str]:
    """Casa 'saida' com 'Saída', 'ESPECIE' com 'Espécie' etc."""
    key = norm(value)
    return next((o for o in options if norm(o) == key), None)


def validate_transaction(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Valida os campos do formulário/CSV e devolve um dict pronto para o modelo.

    Levanta ValidationError com as mensagens por campo.
    """
    errors: Dict[str, str] = {}

    movimento = _clean(data.get("movimento"))
    if not movimento:
        errors["movimento"] = "Informe a descrição do movimento."

    responsavel = _clean(data.get("responsavel"))
    if not responsavel:
        errors["responsavel"] = "Informe o responsável."

    valor = parse_brl(data.get("valor"))
    if valor <= 0:
        errors["valor"] = "O valor deve ser maior que zero."

    tipo = _canon(_clean(data.get("tipo")), TIPOS)
    if tipo is None:
        errors["tipo"] = f"Tipo inválido: {_clean(data.get('tipo')) or '(vazio)'}."

    metodo = _canon(_clean(data.get("metodo")), METODOS)
    if metodo is None:
        errors["metodo"] = f"Método inválido: {_clean(data.get('metodo')) or '(vazio)'}."

    dt = parse_date(data.get("data"))
    if dt is None:
        errors["data"] = "Data inválida (use AAAA-MM-DD ou DD/MM/AAAA)."

    mes = None
    mes_raw = _clean(data.get("mes"))
    if mes_raw:
        n = month_number(mes_raw)
        if n is None:
            errors["mes"] = f"Mês inválido: {mes_raw}."
        else:
            mes = MONTHS[n - 1]
    elif dt is not None:
        mes = MONTHS[dt.month - 1]

    projeto = _clean(data.get("projeto")) or None
    if tipo in TIPOS_PROJETO and not projeto:
        errors["projeto"] = "Lançamentos de projeto exigem o nome do projeto/campanha."

    if errors:
        raise ValidationError(errors)

    out: Dict[str, Any] = {
        "movimento": movimento,
        "tipo": tipo,
        "valor": round(valor, 2),
        "metodo": metodo,
        "data": dt,
        "mes": mes,
        "responsavel": responsavel,
        "contribuinte": _clean(data.get("contribuinte")) or None,
        "projeto": projeto,
        "observacoes": _clean(data.get("observacoes")) or None,
    }
    # ausente = manter o comprovante atual na edição
    if "comprovante" in data:
        out["comprovante"] = data.get("comprovante") or None
    return out


# ===================== CRUD =====================
def get_transaction(db: Session, tx_id: int) -> Optional[Transaction]:
    return db.get(Transaction, tx_id)


def list_transactions(db: Session) -> List[Transaction]:
    q = select(Transaction).order_by(Transaction.data.desc(), Transaction.id.desc())
    return list(db.scalars(q).all())


def save_transaction(db: Session, data: Mapping[str, Any], actor: User) -> Transaction:
    """Cria (sem `id`) ou atualiza (com `id`) um lançamento."""
    require_admin(actor)
    clean = validate_transaction(data)

    tx_id = data.get("id")
    if tx_id:
        tx = db.get(Transaction, int(tx_id))
        if tx is None:
            raise NotFound(f"Lançamento #{tx_id} não encontrado.")
        for k, v in clean.items():
            setattr(tx, k, v)
        acao = "lancamento_editado"
    else:
        tx = Transaction(**clean)
        db.add(tx)
        acao = "lancamento_criado"

    db.commit()
    db.refresh(tx)
    audit(actor, acao, f"#{tx.id} {tx.tipo} {tx.valor} {tx.movimento}")
    return tx


def delete_transaction(db: Session, tx_id: int, actor: User) -> None:
    require_admin(actor)
    tx = db.get(Transaction, tx_id)
    if tx is None:
        raise NotFound(f"Lançamento #{tx_id} não encontrado.")
    resumo = f"#{tx.id} {tx.tipo} {tx.valor} {tx.movimento}"
    db.delete(tx)
    db.commit()
    audit(actor, "lancamento_excluido", resumo)


def import_transactions(db: Session, records: Iterable[Mapping[str, Any]], actor: User) -> int:
    """Acrescenta os registros (já lidos do CSV) ao livro-caixa numa única transação."""
    require_admin(actor)
    txs = [Transaction(**validate_transaction(r)) for r in records]
    if not txs:
        return 0
    db.add_all(txs)
    db.commit()
    audit(actor, "csv_importado", f"{len(txs)} lançamentos")
    return len(txs)


# ===================== DATAFRAME / FILTROS =====================
def to_dataframe(transactions: Iterable[Transaction]) -> pd.DataFrame:
    rows = []
    for t in transactions:
        competencia = t.competencia
        rows.append({
            "id": t.id,
            "movimento": t.movimento,
            "tipo": t.tipo,
            "valor": float(t.valor or 0.0),
            "metodo": t.metodo,
            "data": t.data,
            "mes": t.mes,
            "responsavel": t.responsavel,
            "contribuinte": t.contribuinte,
            "projeto": t.projeto,
            "observacoes": t.observacoes,
            "tem_comprovante": bool(t.comprovante),
            "ano": t.ano,
            "mes_num": competencia.month,
            "competencia": competencia,
        })
    return pd.DataFrame(rows, columns=COLUMNS)


def filter_transactions(
    df: pd.DataFrame,
    search: str = "",
    tipo: Optional[str] = None,
    metodo: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> pd.DataFrame:
    out = df
    term = (search or "").strip().lower()
    if term and not out.empty:
        hay = (
            out["movimento"].fillna("") + "\n"
            + out["responsavel"].fillna("") + "\n"
            + out["contribuinte"].fillna("") + "\n"
            + out["projeto"].fillna("") + "\n"
            + out["id"].astype(str)
        ).str.lower()
        out = out[hay.str.contains(term, regex=False)]
    if tipo and tipo != TODOS:
        out = out[out["tipo"] == tipo]
    if metodo and metodo != TODOS:
        out = out[out["metodo"] == metodo]
    if start:
        out = out[out["data"] >= start]
    if end:
        out = out[out["data"] <= end]
    return out.reset_index(drop=True)


def paginate(df: pd.DataFrame, page: int, per_page: int) -> Tuple[pd.DataFrame, int, int]:
    """Retorna (fatia, página efetiva, total de páginas); a página é ajustada ao intervalo válido."""
    per_page = max(1, int(per_page))
    total_pages = math.ceil(len(df) / per_page)
    if total_pages == 0:
        return df.iloc[0:0], 1, 0
    page = min(max(1, int(page)), total_pages)
    first = (page - 1) * per_page
    return df.iloc[first:first + per_page], page, total_pages


# ===================== COMPROVANTE =====================
_DATA_URL = re.compile(r"^data:([\w.+-]+/[\w.+-]+);base64,(.*)$", re.S)


def encode_comprovante(raw: bytes, mime: str) -> str:
    mime = (mime or "").strip().lower()
    if not (mime.startswith("image/") or mime == "application/pdf"):
        raise ValidationError({"comprovante": "Envie uma imagem ou um PDF."})
    if not raw:
        raise ValidationError({"comprovante": "Arquivo vazio."})
    if len(raw) > config.MAX_COMPROVANTE_MB * 1024 * 1024:
        raise ValidationError({"comprovante": f"Arquivo maior que {config.MAX_COMPROVANTE_MB} MB."})
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def decode_comprovante(url: Optional[str]) -> Optional[Tuple[str, bytes]]:
    m = _DATA_URL.match(url or "")
    if not m:
        return None
    try:
        raw = base64.b64decode(m.group(2), validate=True)
    except (binascii.Error, ValueError):
        return None
    return m.group(1), raw
