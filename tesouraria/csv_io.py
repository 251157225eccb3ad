# tesouraria/csv_io.py
"""Importação/exportação de lançamentos em CSV (padrão Excel BR: ';', vírgula decimal, BOM)."""
from __future__ import annotations

import csv
import io
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

from .errors import ValidationError
from .ledger import validate_transaction

logger = logging.getLogger(__name__)

EXPORT_HEADER = [
    "Id", "Movimento", "Tipo", "Valor", "Método", "Data", "Mês", "Responsável",
    "Contribuinte", "Projeto", "Observações",
]
IMPORT_FIELDS = [
    "id", "movimento", "tipo", "valor", "metodo", "data", "mes", "responsavel",
    "contribuinte", "projeto", "observacoes",
]
DEFAULT_RESPONSAVEL = "Importado"


def _brl_plain(v: Any) -> str:
    return f"{float(v or 0.0):.2f}".replace(".", ",")


def _text(v: Any) -> str:
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return ""
    # uma linha por lançamento: a importação lê o arquivo linha a linha
    return " ".join(str(v).splitlines())


def export_csv(df: pd.DataFrame) -> bytes:
    rows = df.reset_index(drop=True)
    out = pd.DataFrame({
        "Id": [_text(v) for v in rows["id"]],
        "Movimento": [_text(v) for v in rows["movimento"]],
        "Tipo": [_text(v) for v in rows["tipo"]],
        "Valor": [_brl_plain(v) for v in rows["valor"]],
        "Método": [_text(v) for v in rows["metodo"]],
        "Data": [d.isoformat() for d in rows["data"]],
        "Mês": [_text(v) for v in rows["mes"]],
        "Responsável": [_text(v) for v in rows["responsavel"]],
        "Contribuinte": [_text(v) for v in rows["contribuinte"]],
        "Projeto": [_text(v) for v in rows["projeto"]],
        "Observações": [_text(v) for v in rows["observacoes"]],
    }, columns=EXPORT_HEADER)
    return out.to_csv(sep=";", index=False, lineterminator="\n").encode("utf-8-sig")


def consolidated_csv(frame: pd.DataFrame) -> bytes:
    return frame.to_csv(sep=";", index=False, decimal=",", lineterminator="\n").encode("utf-8-sig")


def _decode(content: Union[bytes, str]) -> str:
    if isinstance(content, str):
        return content.lstrip("\ufeff")
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Excel BR salva "CSV (separado por vírgulas)" em Windows-1252
        return content.decode("cp1252", errors="replace")


def _read_line(line: str, sep: str) -> Optional[Dict[str, Any]]:
    """Lê uma linha física; None se ela não puder ser interpretada."""
    if line.count('"') % 2:
        return None
    try:
        frame = pd.read_csv(
            io.StringIO(line),
            sep=sep,
            header=None,
            names=IMPORT_FIELDS,
            dtype=str,
            keep_default_na=False,
            index_col=False,
            engine="python",
            on_bad_lines=lambda fields: fields[:len(IMPORT_FIELDS)],
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error):
        return None
    if frame.empty:
        return None
    return frame.iloc[0].to_dict()


def parse_csv(content: Union[bytes, str]) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Lê um CSV de lançamentos e devolve (registros válidos, erros por linha).

    A primeira linha é o cabeçalho; o separador é ';' se ele aparecer no cabeçalho, senão ','.
    Cada linha é lida separadamente: uma linha quebrada vira erro e não afeta as seguintes.
    A coluna Id é ignorada (o banco gera novos ids).
    """
    lines = _decode(content).splitlines()
    if not lines or not lines[0].strip():
        return [], ["Arquivo vazio."]
    sep = ";" if ";" in lines[0] else ","

    records: List[Dict[str, Any]] = []
    errors: List[str] = []
    for n, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        row = _read_line(line, sep)
        if row is None:
            errors.append(f"Linha {n}: formato inválido.")
            continue
        values = {k: ("" if pd.isna(v) else str(v).strip()) for k, v in row.items()}
        if not any(values.values()):
            continue
        if pd.isna(row["mes"]):
            errors.append(f"Linha {n}: colunas insuficientes.")
            continue
        values.pop("id", None)
        values["responsavel"] = values["responsavel"] or DEFAULT_RESPONSAVEL
        try:
            records.append(validate_transaction(values))
        except ValidationError as e:
            errors.append(f"Linha {n}: {e}")

    logger.info("CSV lido: %d válidos, %d com erro", len(records), len(errors))
    return records, errors
