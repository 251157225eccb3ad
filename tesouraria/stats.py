# tesouraria/stats.py
"""Estatísticas derivadas do livro-caixa (painel, consolidado, análise e relatório mensal).

Todas as funções recebem o DataFrame de `ledger.to_dataframe`. Lançamentos de projeto
nunca entram no saldo operacional (Dízimos e Ofertas); ficam no Fundo de Projetos.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from .constants import (
    METODO_ESPECIE, METODO_PIX, MONTHS, TIPO_ENTRADA, TIPO_ENTRADA_PROJETO,
    TIPO_SAIDA, TIPO_SAIDA_PROJETO, TIPOS, TIPOS_GERAIS,
)
from .utils import today

SUPERAVIT = "Superavitário"
DEFICIT = "Déficit"


@dataclass
class FinancialStats:
    total_income: float
    total_expense: float
    balance: float
    project_income: float
    project_expense: float
    project_balance: float
    monthly: pd.DataFrame


@dataclass
class MonthlyReport:
    ref: date
    general_income: float
    general_expense: float
    operating_balance: float
    project_income: float
    project_expense: float
    total_balance: float
    projects: pd.DataFrame
    transactions: pd.DataFrame


# ===================== HELPERS =====================
def _sum(df: pd.DataFrame, tipo: str, **eq: Any) -> float:
    mask = df["tipo"] == tipo
    for col, val in eq.items():
        mask &= df[col] == val
    return round(float(df.loc[mask, "valor"].sum()), 2)


def competencia_label(c: date) -> str:
    return f"{MONTHS[c.month - 1]}/{c.year}"


def _first_day(ref: date) -> date:
    return date(ref.year, ref.month, 1)


def _of_month(df: pd.DataFrame, ref: date) -> pd.DataFrame:
    return df[df["competencia"] == _first_day(ref)]


def _monthly_pivot(df: pd.DataFrame) -> pd.DataFrame:
    """Soma por competência x tipo, em ordem cronológica."""
    if df.empty:
        return pd.DataFrame(columns=["competencia", *TIPOS])
    piv = df.pivot_table(index="competencia", columns="tipo", values="valor", aggfunc="sum", fill_value=0.0)
    piv = piv.reindex(columns=list(TIPOS), fill_value=0.0).sort_index()
    piv.columns.name = None
    return piv.reset_index()


# ===================== PAINEL =====================
def financial_stats(df: pd.DataFrame) -> FinancialStats:
    income = _sum(df, TIPO_ENTRADA)
    expense = _sum(df, TIPO_SAIDA)
    p_income = _sum(df, TIPO_ENTRADA_PROJETO)
    p_expense = _sum(df, TIPO_SAIDA_PROJETO)

    piv = _monthly_pivot(df)
    monthly = pd.DataFrame({
        "mes": [competencia_label(c) for c in piv["competencia"]],
        "competencia": list(piv["competencia"]),
        "income": piv[TIPO_ENTRADA].astype(float).round(2).tolist(),
        "expense": piv[TIPO_SAIDA].astype(float).round(2).tolist(),
        "project_income": piv[TIPO_ENTRADA_PROJETO].astype(float).round(2).tolist(),
        "project_expense": piv[TIPO_SAIDA_PROJETO].astype(float).round(2).tolist(),
    })

    return FinancialStats(
        total_income=income,
        total_expense=expense,
        balance=round(income - expense, 2),
        project_income=p_income,
        project_expense=p_expense,
        project_balance=round(p_income - p_expense, 2),
        monthly=monthly,
    )


def top_transactions(df: pd.DataFrame, ref: Optional[date] = None, days: int = 30, limit: int = 5) -> pd.DataFrame:
    """Maiores lançamentos (por valor) dos últimos `days` dias."""
    ref = ref or today()
    cutoff = ref - timedelta(days=days)
    recent = df[(df["data"] >= cutoff) & (df["data"] <= ref)]
    return recent.sort_values("valor", ascending=False, kind="stable").head(limit).reset_index(drop=True)


# ===================== CONSOLIDADO MENSAL =====================
def monthly_consolidated(df: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, float]]:
    piv = _monthly_pivot(df[df["tipo"].isin(TIPOS_GERAIS)])
    frame = pd.DataFrame({
        "Competência": [competencia_label(c) for c in piv["competencia"]],
        "Entradas": piv[TIPO_ENTRADA].astype(float).round(2).tolist(),
        "Saídas": piv[TIPO_SAIDA].astype(float).round(2).tolist(),
    })
    frame["Saldo"] = (frame["Entradas"] - frame["Saídas"]).round(2)

    n = len(frame)
    summary = {
        "media_entradas": round(float(frame["Entradas"].sum()) / n, 2) if n else 0.0,
        "media_saidas": round(float(frame["Saídas"].sum()) / n, 2) if n else 0.0,
        "meses_ativos": n,
    }
    return frame, summary


# ===================== RESUMO DO MÊS (cards) =====================
def month_cards(df: pd.DataFrame, ref: date) -> Dict[str, Any]:
    m = _of_month(df, ref)
    total_balance = _sum(df, TIPO_ENTRADA) - _sum(df, TIPO_SAIDA)
    return {
        "label": competencia_label(_first_day(ref)),
        "month_income": _sum(m, TIPO_ENTRADA),
        "month_expense": _sum(m, TIPO_SAIDA),
        "pix_income": _sum(m, TIPO_ENTRADA, metodo=METODO_PIX),
        "cash_income": _sum(m, TIPO_ENTRADA, metodo=METODO_ESPECIE),
        "total_balance": round(total_balance, 2),
        "operations": int(len(m)),
    }


# ===================== ANÁLISE =====================
def annual_evolution(df: pd.DataFrame, year: int) -> pd.DataFrame:
    y = df[df["ano"] == year]
    rows = []
    for i, nome in enumerate(MONTHS, start=1):
        m = y[y["mes_num"] == i]
        rows.append({
            "Mês": nome[:3],
            "Mês completo": nome,
            "Entradas": _sum(m, TIPO_ENTRADA),
            "Saídas": _sum(m, TIPO_SAIDA),
        })
    return pd.DataFrame(rows)


def month_analysis(df: pd.DataFrame, ref: date) -> Dict[str, Any]:
    ranking = _of_month(df, ref).sort_values("valor", kind="stable").reset_index(drop=True)
    incomes = ranking[ranking["tipo"] == TIPO_ENTRADA].reset_index(drop=True)
    expenses = ranking[ranking["tipo"] == TIPO_SAIDA].reset_index(drop=True)
    income_total = round(float(incomes["valor"].sum()), 2)
    expense_total = round(float(expenses["valor"].sum()), 2)
    return {
        "label": competencia_label(_first_day(ref)),
        "ranking": ranking,
        "incomes": incomes,
        "expenses": expenses,
        "income_total": income_total,
        "expense_total": expense_total,
        "balance": round(income_total - expense_total, 2),
    }


# ===================== RELATÓRIO MENSAL =====================
def _utilizacao(entradas: float, saidas: float) -> float:
    if entradas > 0:
        return round(min(100.0, saidas / entradas * 100), 1)
    return 100.0 if saidas > 0 else 0.0


def monthly_report(df: pd.DataFrame, ref: date) -> MonthlyReport:
    m = _of_month(df, ref)
    g_in, g_out = _sum(m, TIPO_ENTRADA), _sum(m, TIPO_SAIDA)
    p_in, p_out = _sum(m, TIPO_ENTRADA_PROJETO), _sum(m, TIPO_SAIDA_PROJETO)

    rows = []
    nomes = sorted({p for p in m["projeto"].dropna() if str(p).strip()})
    for nome in nomes:
        entradas = _sum(m, TIPO_ENTRADA_PROJETO, projeto=nome)
        saidas = _sum(m, TIPO_SAIDA_PROJETO, projeto=nome)
        rows.append({
            "Projeto": nome,
            "Entradas": entradas,
            "Saídas": saidas,
            "Saldo": round(entradas - saidas, 2),
            "Situação": SUPERAVIT if entradas >= saidas else DEFICIT,
            "Utilização %": _utilizacao(entradas, saidas),
        })
    projects = pd.DataFrame(rows, columns=["Projeto", "Entradas", "Saídas", "Saldo", "Situação", "Utilização %"])

    return MonthlyReport(
        ref=_first_day(ref),
        general_income=g_in,
        general_expense=g_out,
        operating_balance=round(g_in - g_out, 2),
        project_income=p_in,
        project_expense=p_out,
        total_balance=round((g_in + p_in) - (g_out + p_out), 2),
        projects=projects,
        transactions=m.sort_values(["data", "id"], kind="stable").reset_index(drop=True),
    )
