# tesouraria/pages.py
"""Páginas Streamlit. A lógica fica em ledger/stats/auth; aqui só a tela."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

import pandas as pd
import streamlit as st

from . import auth, charts, csv_io, ledger, stats
from .config import CHURCH_NAME, MAX_COMPROVANTE_MB
from .constants import METODOS, MONTHS, PAGE_SIZES, ROLE_LABELS, ROLES, ROLE_TESOUREIRO, TIPOS, TIPOS_PROJETO
from .db import SessionLocal
from .errors import AccessDenied, NotFound, ValidationError
from .models import Transaction, User
from .utils import format_currency, format_date, today


DISPLAY_COLUMNS = {
    "id": "ID",
    "data": "Data",
    "movimento": "Movimento",
    "tipo": "Tipo",
    "metodo": "Método",
    "valor": "Valor",
    "responsavel": "Responsável",
    "mes": "Mês",
    "projeto": "Projeto",
    "tem_comprovante": "Docs",
}


# ===================== DADOS / CACHE =====================
@st.cache_data(ttl=600)
def load_ledger_df() -> pd.DataFrame:
    with SessionLocal() as db:
        return ledger.to_dataframe(ledger.list_transactions(db))


def refresh_data():
    st.cache_data.clear()


# ===================== HELPERS DE TELA =====================
def _set_status(kind: str, msg: str):
    st.session_state.status_message = (kind, msg)


def _show_status():
    kind, msg = st.session_state.pop("status_message", (None, None))
    if kind == "success":
        st.success(msg)
    elif kind == "error":
        st.error(msg)
    elif kind:
        st.info(msg)


def _show_validation(e: ValidationError):
    for msg in e.errors.values():
        st.error(msg)


def _confirm_ok(val: str) -> bool:
    return str(val or "").strip().upper() == "EXCLUIR"


def _display(df: pd.DataFrame, columns: Optional[List[str]] = None):
    """DataFrame com cabeçalhos em português e valores no padrão BR."""
    cols = columns or ["id", "data", "movimento", "tipo", "metodo", "valor", "responsavel"]
    view = df[cols].rename(columns=DISPLAY_COLUMNS)
    fmt = {}
    if "Valor" in view.columns:
        fmt["Valor"] = format_currency
    if "Data" in view.columns:
        fmt["Data"] = format_date
    if "Docs" in view.columns:
        fmt["Docs"] = lambda v: "📎" if v else "—"
    st.dataframe(view.style.format(fmt), use_container_width=True, hide_index=True)


def get_month_selector(label: str = "Mês de referência", key_prefix: str = "main", default: Optional[date] = None) -> date:
    """Seletores de mês e ano com chave única baseada no prefixo."""
    ref = default or today()
    colm, coly = st.columns([2, 1])
    with colm:
        m = st.selectbox(
            f"{label} — Mês",
            list(range(1, 13)),
            index=ref.month - 1,
            format_func=lambda i: MONTHS[i - 1],
            key=f"{key_prefix}_month_selector",
        )
    with coly:
        y = st.number_input("Ano", value=ref.year, step=1, format="%d", key=f"{key_prefix}_year_selector")
    return date(int(y), int(m), 1)


def _readonly_notice(user: User):
    if not auth.can_edit(user):
        st.caption("🔒 Perfil Tesoureiro: acesso somente para consulta.")


# ===================== PAINEL =====================
def page_painel(user: User):
    col_t, col_b = st.columns([5, 1])
    with col_t:
        st.markdown("<h1 class='page-title'>Painel Financeiro</h1>", unsafe_allow_html=True)
        st.caption(f"{CHURCH_NAME} — Gestão de Tesouraria")
    with col_b:
        if st.button("🔄 Atualizar", key="painel_refresh", use_container_width=True):
            refresh_data()
            st.rerun()

    df = load_ledger_df()
    s = stats.financial_stats(df)

    st.markdown("#### Dízimos e Ofertas (caixa operacional)")
    c1, c2, c3 = st.columns(3)
    c1.metric("Entradas", format_currency(s.total_income))
    c2.metric("Saídas", format_currency(s.total_expense))
    c3.metric("Saldo", format_currency(s.balance))

    st.markdown("#### Fundo de Projetos")
    p1, p2, p3 = st.columns(3)
    p1.metric("Entradas de Projetos", format_currency(s.project_income))
    p2.metric("Despesas de Projetos", format_currency(s.project_expense))
    p3.metric("Saldo dos Projetos", format_currency(s.project_balance))

    st.divider()
    st.markdown("#### Maiores lançamentos (últimos 30 dias)")
    top = stats.top_transactions(df)
    if top.empty:
        st.info("Nenhum lançamento nos últimos 30 dias.")
    else:
        _display(top, ["data", "movimento", "tipo", "metodo", "valor"])

    if s.monthly.empty:
        st.info("Adicione lançamentos para ver os gráficos.")
        return
    g1, g2 = st.columns([2, 1])
    with g1:
        st.plotly_chart(charts.monthly_bar_chart(s.monthly), use_container_width=True)
    with g2:
        st.plotly_chart(charts.income_expense_pie(s), use_container_width=True)


# ===================== RESUMO DO MÊS =====================
def page_resumo_mes(user: User):
    st.markdown("<h1 class='page-title'>Resumo do Mês</h1>", unsafe_allow_html=True)
    ref = get_month_selector(label="Competência", key_prefix="resumo")
    cards = stats.month_cards(load_ledger_df(), ref)

    c1, c2, c3 = st.columns(3)
    c1.metric(f"Entradas — {cards['label']}", format_currency(cards["month_income"]))
    c2.metric(f"Saídas — {cards['label']}", format_currency(cards["month_expense"]))
    c3.metric("Saldo acumulado (próximo mês)", format_currency(cards["total_balance"]))

    d1, d2, d3 = st.columns(3)
    d1.metric("Entradas via Pix", format_currency(cards["pix_income"]))
    d2.metric("Entradas em Espécie", format_currency(cards["cash_income"]))
    d3.metric("Operações no mês", cards["operations"])
    st.caption("O saldo acumulado considera apenas Dízimos e Ofertas; o Fundo de Projetos é controlado à parte.")


# ===================== LANÇAMENTOS =====================
def _transaction_form(user: User, tx: Optional[Transaction], key: str):
    """Formulário de inclusão (tx=None) ou edição."""
    hoje = today()
    with st.form(key, clear_on_submit=tx is None):
        c1, c2 = st.columns([2, 1])
        movimento = c1.text_input("Descrição do movimento *", value=tx.movimento if tx else "", key=f"{key}_movimento")
        tipo = c2.selectbox("Tipo *", TIPOS, index=TIPOS.index(tx.tipo) if tx else 0, key=f"{key}_tipo")

        c3, c4, c5 = st.columns(3)
        valor = c3.number_input("Valor (R$) *", min_value=0.0, step=0.01, format="%.2f",
                                value=float(tx.valor) if tx else 0.0, key=f"{key}_valor")
        metodo = c4.radio("Método *", METODOS, index=METODOS.index(tx.metodo) if tx else 0, horizontal=True, key=f"{key}_metodo")
        data_tx = c5.date_input("Data *", value=tx.data if tx else hoje, format="DD/MM/YYYY", key=f"{key}_data")

        c6, c7 = st.columns(2)
        mes_default = MONTHS.index(tx.mes) if tx and tx.mes in MONTHS else hoje.month - 1
        mes = c6.selectbox("Mês de competência", MONTHS, index=mes_default, key=f"{key}_mes")
        responsavel = c7.text_input("Responsável *", value=tx.responsavel if tx else "", key=f"{key}_responsavel")

        c8, c9 = st.columns(2)
        contribuinte = c8.text_input("Contribuinte / Favorecido", value=(tx.contribuinte or "") if tx else "", key=f"{key}_contribuinte")
        projeto = c9.text_input("Projeto / Campanha", value=(tx.projeto or "") if tx else "",
                                help=f"Obrigatório para: {', '.join(TIPOS_PROJETO)}", key=f"{key}_projeto")

        comprovante = st.file_uploader(
            f"Comprovante (imagem ou PDF, até {MAX_COMPROVANTE_MB} MB)",
            type=["png", "jpg", "jpeg", "webp", "pdf"], key=f"{key}_comprovante",
        )
        remover = st.checkbox("Remover comprovante atual", key=f"{key}_remover") if tx is not None and tx.comprovante else False
        observacoes = st.text_area("Observações", value=(tx.observacoes or "") if tx else "", key=f"{key}_obs")

        ok = st.form_submit_button("Salvar lançamento", type="primary")

    if not ok:
        return

    data = {
        "movimento": movimento, "tipo": tipo, "valor": valor, "metodo": metodo,
        "data": data_tx, "mes": mes, "responsavel": responsavel,
        "contribuinte": contribuinte, "projeto": projeto, "observacoes": observacoes,
    }
    if tx is not None:
        data["id"] = tx.id
    try:
        if comprovante is not None:
            data["comprovante"] = ledger.encode_comprovante(comprovante.getvalue(), comprovante.type)
        elif remover:
            data["comprovante"] = None
        with SessionLocal() as db:
            saved = ledger.save_transaction(db, data, user)
            saved_id = saved.id
    except ValidationError as e:
        _show_validation(e)
        return
    except (AccessDenied, NotFound) as e:
        st.error(str(e))
        return

    _set_status("success", f"✅ Lançamento #{saved_id} salvo com sucesso.")
    refresh_data()
    st.rerun()


def _render_comprovante(tx: Transaction):
    decoded = ledger.decode_comprovante(tx.comprovante)
    if decoded is None:
        st.caption("Sem comprovante anexado.")
        return
    mime, raw = decoded
    if mime.startswith("image/"):
        st.image(raw, caption=f"Comprovante do lançamento #{tx.id}")
    ext = "pdf" if mime == "application/pdf" else mime.split("/")[-1]
    st.download_button("⬇️ Baixar comprovante", data=raw, file_name=f"comprovante_{tx.id}.{ext}",
                       mime=mime, key=f"dl_comp_{tx.id}")


def _render_selected(user: User, page_df: pd.DataFrame):
    """Ações sobre um lançamento da página: ver comprovante, editar, excluir."""
    if page_df.empty:
        return
    labels = {
        int(r.id): f"#{r.id} — {format_date(r.data)} — {r.movimento} — {format_currency(r.valor)}"
        for r in page_df.itertuples()
    }
    sel = st.selectbox("Selecionar lançamento", list(labels), format_func=labels.get, key="lanc_sel")

    with SessionLocal() as db:
        tx = ledger.get_transaction(db, sel)
        if tx is None:
            st.warning("Lançamento não encontrado. Atualize a página.")
            return
        db.expunge(tx)

    tabs = st.tabs(["📎 Comprovante", "✏️ Editar", "🗑️ Excluir"] if auth.can_edit(user) else ["📎 Comprovante"])
    with tabs[0]:
        caixa = "Fundo de Projetos" if tx.is_projeto else "Dízimos e Ofertas"
        sentido = "⬆️ Entrada" if tx.is_entrada else "⬇️ Saída"
        st.caption(f"{sentido} • {caixa} • Competência {stats.competencia_label(tx.competencia)}")
        if tx.contribuinte or tx.projeto or tx.observacoes:
            st.markdown(
                f"**Contribuinte:** {tx.contribuinte or '—'}  \n"
                f"**Projeto:** {tx.projeto or '—'}  \n"
                f"**Observações:** {tx.observacoes or '—'}"
            )
        _render_comprovante(tx)
    if not auth.can_edit(user):
        return
    with tabs[1]:
        _transaction_form(user, tx, key=f"form_edit_{tx.id}")
    with tabs[2]:
        st.warning(f"Excluir permanentemente o lançamento #{tx.id} — {tx.movimento} ({format_currency(tx.valor)})?")
        confirm = st.text_input("Digite EXCLUIR para confirmar", key=f"del_confirm_{tx.id}")
        if st.button("Confirmar exclusão", disabled=not _confirm_ok(confirm), key=f"del_btn_{tx.id}"):
            try:
                with SessionLocal() as db:
                    ledger.delete_transaction(db, tx.id, user)
            except (AccessDenied, NotFound) as e:
                st.error(str(e))
                return
            _set_status("success", f"Lançamento #{tx.id} excluído.")
            refresh_data()
            st.rerun()


def _render_consolidado(df: pd.DataFrame):
    frame, summary = stats.monthly_consolidated(df)
    c1, c2, c3 = st.columns(3)
    c1.metric("Média de Receitas", format_currency(summary["media_entradas"]))
    c2.metric("Média de Despesas", format_currency(summary["media_saidas"]))
    c3.metric("Meses Ativos", summary["meses_ativos"])
    if frame.empty:
        st.info("Nenhum dado consolidado disponível.")
        return
    st.dataframe(
        frame.style.format({"Entradas": format_currency, "Saídas": format_currency, "Saldo": format_currency}),
        use_container_width=True, hide_index=True,
    )
    st.download_button("⬇️ Baixar consolidado (CSV)", data=csv_io.consolidated_csv(frame),
                       file_name=f"consolidado_mensal_{today().isoformat()}.csv", mime="text/csv",
                       key="dl_consolidado")


def _render_import(user: User):
    st.markdown("Colunas esperadas: `Id;Movimento;Tipo;Valor;Método;Data;Mês;Responsável` "
                "(opcionais: `Contribuinte;Projeto;Observações`). Use o CSV exportado como modelo.")
    up = st.file_uploader("Arquivo CSV", type=["csv"], key="csv_import_file")
    if up is None or not st.button("Importar lançamentos", type="primary", key="csv_import_btn"):
        return
    records, erros = csv_io.parse_csv(up.getvalue())
    if records:
        try:
            with SessionLocal() as db:
                n = ledger.import_transactions(db, records, user)
        except (AccessDenied, ValidationError) as e:
            st.error(str(e))
            return
        _set_status("success", f"✅ {n} lançamentos importados com sucesso!")
        if erros:
            st.session_state.import_errors = erros
        refresh_data()
        st.rerun()
    elif erros:
        st.error("Nenhum lançamento importado.")
        for e in erros:
            st.caption(f"❌ {e}")
    else:
        st.warning("Nenhum dado válido encontrado no CSV.")


def page_lancamentos(user: User):
    st.markdown("<h1 class='page-title'>Lançamentos Financeiros</h1>", unsafe_allow_html=True)
    _readonly_notice(user)
    _show_status()
    for e in st.session_state.pop("import_errors", []):
        st.caption(f"⚠️ {e}")

    nomes = ["📋 Lançamentos", "📊 Consolidado Mensal"]
    if auth.can_edit(user):
        nomes += ["➕ Novo lançamento", "📥 Importar CSV"]
    tabs = st.tabs(nomes)

    df = load_ledger_df()

    with tabs[0]:
        search = st.text_input("Pesquisar por descrição, ID, responsável, contribuinte ou projeto", key="lanc_search")
        with st.expander("Filtros avançados"):
            f1, f2, f3, f4 = st.columns(4)
            tipo = f1.selectbox("Tipo", [ledger.TODOS, *TIPOS], key="lanc_f_tipo")
            metodo = f2.selectbox("Método", [ledger.TODOS, *METODOS], key="lanc_f_metodo")
            start = f3.date_input("De (data inicial)", value=None, format="DD/MM/YYYY", key="lanc_f_start")
            end = f4.date_input("Até (data final)", value=None, format="DD/MM/YYYY", key="lanc_f_end")

        filtered = ledger.filter_transactions(df, search, tipo, metodo, start, end)

        # nova busca/filtro volta para a primeira página
        sig = (search, tipo, metodo, start, end)
        if st.session_state.get("lanc_sig") != sig:
            st.session_state["lanc_sig"] = sig
            st.session_state["lanc_page"] = 1

        per_page = st.selectbox("Itens por página", PAGE_SIZES, index=1, key="lanc_per_page")
        page_df, page, total_pages = ledger.paginate(filtered, st.session_state.get("lanc_page", 1), per_page)
        st.session_state["lanc_page"] = page

        if page_df.empty:
            st.info("Nenhum lançamento encontrado com esses filtros.")
        else:
            _display(page_df, ["id", "data", "movimento", "tipo", "metodo", "valor", "responsavel", "mes", "tem_comprovante"])
            n1, n2 = st.columns([1, 3])
            n1.number_input("Página", min_value=1, max_value=max(total_pages, 1), step=1, key="lanc_page")
            n2.caption(f"Página {page} de {total_pages} • {len(filtered)} registros")

        st.download_button(
            "⬇️ Exportar CSV", data=csv_io.export_csv(filtered),
            file_name=f"relatorio_3ipi_{today().isoformat()}.csv", mime="text/csv",
            disabled=filtered.empty, key="lanc_export",
        )

        st.divider()
        _render_selected(user, page_df)

    with tabs[1]:
        _render_consolidado(df)

    if auth.can_edit(user):
        with tabs[2]:
            _transaction_form(user, None, key="form_novo_lancamento")
        with tabs[3]:
            _render_import(user)


# ===================== ANÁLISE =====================
def page_analise(user: User):
    st.markdown("<h1 class='page-title'>Análise Mensal</h1>", unsafe_allow_html=True)
    ref = get_month_selector(label="Relatório de", key_prefix="analise")
    df = load_ledger_df()
    a = stats.month_analysis(df, ref)

    c1, c2, c3 = st.columns(3)
    c1.metric("Entradas do mês", format_currency(a["income_total"]))
    c2.metric("Saídas do mês", format_currency(a["expense_total"]))
    c3.metric("Saldo do mês", format_currency(a["balance"]))

    st.plotly_chart(charts.annual_evolution_chart(stats.annual_evolution(df, ref.year)), use_container_width=True)

    if a["ranking"].empty:
        st.info(f"Nenhum lançamento em {a['label']}.")
        return
    st.plotly_chart(charts.ranking_chart(a["ranking"]), use_container_width=True)

    e1, e2 = st.columns(2)
    with e1:
        st.markdown(f"##### Entradas — Total: {format_currency(a['income_total'])}")
        if a["incomes"].empty:
            st.caption("Nenhuma entrada este mês.")
        else:
            _display(a["incomes"], ["data", "movimento", "metodo", "valor"])
    with e2:
        st.markdown(f"##### Saídas — Total: {format_currency(a['expense_total'])}")
        if a["expenses"].empty:
            st.caption("Nenhuma saída este mês.")
        else:
            _display(a["expenses"], ["data", "movimento", "metodo", "valor"])


# ===================== RELATÓRIO MENSAL =====================
def page_relatorio_mensal(user: User):
    st.markdown("<h1 class='page-title'>Relatório Mensal</h1>", unsafe_allow_html=True)
    ref = get_month_selector(label="Competência", key_prefix="relatorio")
    rep = stats.monthly_report(load_ledger_df(), ref)

    st.markdown(f"### {CHURCH_NAME}")
    st.caption(f"Relatório Financeiro de Tesouraria — {stats.competencia_label(rep.ref)}")

    st.markdown("#### Resumo Executivo")
    c1, c2, c3 = st.columns(3)
    c1.metric("Dízimos e Ofertas (Entradas)", format_currency(rep.general_income))
    c2.metric("Despesas Operacionais", format_currency(rep.general_expense))
    c3.metric("Saldo Operacional", format_currency(rep.operating_balance))
    d1, d2, d3 = st.columns(3)
    d1.metric("Entradas de Projetos", format_currency(rep.project_income))
    d2.metric("Despesas de Projetos", format_currency(rep.project_expense))
    d3.metric("Saldo Total do Mês", format_currency(rep.total_balance))

    if not rep.projects.empty:
        st.markdown("#### Fundo de Projetos e Eventos")
        for row in rep.projects.to_dict("records"):
            st.markdown(
                f"**{row['Projeto']}** — {row['Situação']} • Entradas {format_currency(row['Entradas'])} "
                f"• Saídas {format_currency(row['Saídas'])} • Saldo {format_currency(row['Saldo'])}"
            )
            st.progress(min(row["Utilização %"] / 100.0, 1.0), text=f"Utilização: {row['Utilização %']:.0f}%")

    st.caption(
        f"O saldo operacional de {format_currency(rep.operating_balance)} não considera os fundos de projetos."
    )

    st.markdown("#### Lançamentos da competência")
    if rep.transactions.empty:
        st.info("Nenhum lançamento nesta competência.")
        return
    _display(rep.transactions, ["data", "movimento", "tipo", "metodo", "valor", "responsavel", "projeto"])

    b1, b2 = st.columns(2)
    sufixo = rep.ref.strftime("%Y_%m")
    b1.download_button("⬇️ Lançamentos do mês (CSV)", data=csv_io.export_csv(rep.transactions),
                       file_name=f"lancamentos_{sufixo}.csv", mime="text/csv", key="rel_dl_tx")
    if not rep.projects.empty:
        b2.download_button("⬇️ Fundo de Projetos (CSV)", data=csv_io.consolidated_csv(rep.projects),
                           file_name=f"projetos_{sufixo}.csv", mime="text/csv", key="rel_dl_proj")


# ===================== USUÁRIOS =====================
def page_usuarios(user: User):
    if not auth.is_admin(user):
        st.warning("🔒 Apenas o **Administrador** pode gerenciar usuários.")
        return

    st.markdown("<h1 class='page-title'>Controle de Acessos</h1>", unsafe_allow_html=True)
    _show_status()

    with SessionLocal() as db:
        search = st.text_input("Buscar por nome ou e-mail", key="users_search")
        users = auth.list_users(db, search)
        dfu = pd.DataFrame(
            [{"ID": u.id, "Nome": u.name, "E-mail": u.email, "Perfil": u.role_label} for u in users],
            columns=["ID", "Nome", "E-mail", "Perfil"],
        )
        st.dataframe(dfu, use_container_width=True, hide_index=True)

        with st.expander("➕ Novo usuário"):
            with st.form("form_novo_usuario", clear_on_submit=False):
                name = st.text_input("Nome completo")
                email = st.text_input("E-mail")
                pwd = st.text_input("Senha", type="password")
                role = st.selectbox("Perfil", ROLES, index=ROLES.index(ROLE_TESOUREIRO), format_func=ROLE_LABELS.get)
                ok = st.form_submit_button("Cadastrar", type="primary")
            if ok:
                try:
                    novo = auth.register_user(db, name, email, pwd, role=role, actor=user)
                except ValidationError as e:
                    _show_validation(e)
                except AccessDenied as e:
                    st.error(str(e))
                else:
                    _set_status("success", f"Usuário {novo.email} cadastrado.")
                    st.rerun()

        outros = [u for u in users if u.id != user.id]
        with st.expander("🗑️ Revogar acesso"):
            if not outros:
                st.info("Nenhum outro usuário cadastrado.")
            else:
                alvo = st.selectbox("Usuário", [u.id for u in outros],
                                    format_func=lambda i: next(f"{u.name} <{u.email}>" for u in outros if u.id == i),
                                    key="users_del_sel")
                confirm = st.text_input("Digite EXCLUIR para confirmar", key="users_del_confirm")
                if st.button("Revogar acesso", disabled=not _confirm_ok(confirm), key="users_del_btn"):
                    try:
                        auth.delete_user(db, alvo, user)
                    except ValidationError as e:
                        _show_validation(e)
                    except (AccessDenied, NotFound) as e:
                        st.error(str(e))
                    else:
                        _set_status("success", "Acesso revogado.")
                        st.rerun()


# ===================== CADASTRO (autoatendimento) =====================
def signup_ui():
    st.markdown("#### Criar conta de consulta")
    st.caption("Contas criadas aqui têm perfil Tesoureiro (somente leitura). "
               "Acesso de Administrador é concedido pelo administrador do sistema.")
    with st.form("form_signup"):
        name = st.text_input("Nome completo", placeholder="Ex: João da Silva")
        email = st.text_input("E-mail", placeholder="tesouraria@3ipi.com")
        pwd = st.text_input("Senha", type="password")
        confirm = st.text_input("Confirmar senha", type="password")
        ok = st.form_submit_button("Criar conta")
    if not ok:
        return
    try:
        with SessionLocal() as db:
            auth.register_user(db, name, email, pwd, confirm=confirm)
    except ValidationError as e:
        _show_validation(e)
        return
    st.success("Conta de Tesouraria criada com sucesso! Faça login na aba 'Entrar'.")
