# tesouraria/charts.py
from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .constants import COLORS, TIPO_ENTRADA, TIPO_SAIDA, TIPOS_ENTRADA
from .stats import FinancialStats
from .utils import format_currency

COLOR_IN = COLORS["primaryBlue"]
COLOR_OUT = COLORS["secondaryYellow"]
COLOR_MAP = {TIPO_ENTRADA: COLOR_IN, TIPO_SAIDA: COLOR_OUT, "Entradas": COLOR_IN, "Saídas": COLOR_OUT}


def _layout(fig: go.Figure, title: str = "") -> go.Figure:
    fig.update_layout(
        title=title,
        legend_title_text="",
        margin=dict(l=10, r=10, t=40 if title else 10, b=10),
        plot_bgcolor="rgba(0,0,0,0)",
    )
    return fig


def monthly_bar_chart(monthly: pd.DataFrame) -> go.Figure:
    """Barras agrupadas Entrada x Saída por competência (`FinancialStats.monthly`)."""
    long = monthly.rename(columns={"income": TIPO_ENTRADA, "expense": TIPO_SAIDA}).melt(
        id_vars=["mes"], value_vars=[TIPO_ENTRADA, TIPO_SAIDA], var_name="Tipo", value_name="Valor"
    )
    fig = px.bar(long, x="mes", y="Valor", color="Tipo", barmode="group", color_discrete_map=COLOR_MAP,
                 labels={"mes": ""})
    return _layout(fig, "Fluxo Mensal")


def income_expense_pie(stats: FinancialStats) -> go.Figure:
    fig = go.Figure(go.Pie(
        labels=["Entradas", "Saídas"],
        values=[stats.total_income, stats.total_expense],
        hole=0.55,
        marker=dict(colors=[COLOR_IN, COLOR_OUT]),
        sort=False,
    ))
    return _layout(fig, "Distribuição")


def annual_evolution_chart(frame: pd.DataFrame) -> go.Figure:
    """Recebe `stats.annual_evolution`."""
    long = frame.melt(id_vars=["Mês"], value_vars=["Entradas", "Saídas"], var_name="Tipo", value_name="Valor")
    fig = px.bar(long, x="Mês", y="Valor", color="Tipo", barmode="group", color_discrete_map=COLOR_MAP)
    fig.update_yaxes(tickprefix="R$ ")
    return _layout(fig, "Evolução Anual")


def ranking_chart(frame: pd.DataFrame) -> go.Figure:
    """Barras horizontais por lançamento do mês (`month_analysis()['ranking']`)."""
    colors = [COLOR_IN if t in TIPOS_ENTRADA else COLOR_OUT for t in frame["tipo"]]
    fig = go.Figure(go.Bar(
        x=list(frame["valor"]),
        y=list(frame["movimento"]),
        orientation="h",
        marker=dict(color=colors),
        text=[format_currency(v) for v in frame["valor"]],
        textposition="outside",
    ))
    fig.update_layout(height=max(300, 40 * len(frame)))
    return _layout(fig, "Ranking do Mês")
