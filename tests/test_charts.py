from datetime import date

from tesouraria import charts, stats
from tesouraria.constants import TIPO_SAIDA


def _df(tx_factory, df_factory):
    return df_factory(
        tx_factory(1, 1500.0, data=date(2024, 3, 1)),
        tx_factory(2, 450.3, tipo=TIPO_SAIDA, data=date(2024, 3, 5)),
        tx_factory(3, 100.0, data=date(2024, 4, 2)),
    )


def test_monthly_bar_chart(tx_factory, df_factory):
    s = stats.financial_stats(_df(tx_factory, df_factory))
    fig = charts.monthly_bar_chart(s.monthly)
    assert {t.name for t in fig.data} == {"Entrada", "Saída"}
    assert fig.layout.barmode == "group"


def test_income_expense_pie(tx_factory, df_factory):
    s = stats.financial_stats(_df(tx_factory, df_factory))
    fig = charts.income_expense_pie(s)
    assert list(fig.data[0].values) == [1600.0, 450.3]
    assert fig.data[0].hole == 0.55


def test_annual_evolution_chart(tx_factory, df_factory):
    frame = stats.annual_evolution(_df(tx_factory, df_factory), 2024)
    fig = charts.annual_evolution_chart(frame)
    assert len(fig.data) == 2
    assert len(fig.data[0].x) == 12


def test_ranking_chart_colors(tx_factory, df_factory):
    ranking = stats.month_analysis(_df(tx_factory, df_factory), date(2024, 3, 1))["ranking"]
    fig = charts.ranking_chart(ranking)
    bar = fig.data[0]
    assert list(bar.marker.color) == [charts.COLOR_OUT, charts.COLOR_IN]
    assert list(bar.text) == ["R$ 450,30", "R$ 1.500,00"]
