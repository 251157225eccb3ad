# main.py — Tesouraria 3IPI Natal
# Execução: streamlit run main.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta

import streamlit as st

from tesouraria import auth, pages
from tesouraria.config import APP_NAME, INACTIVITY_MINUTES, SESSION_DAYS, configure_logging, is_dev
from tesouraria.constants import COLORS
from tesouraria.db import SessionLocal, init_db
from tesouraria.models import User

# ===================== ST CONFIG / THEME =====================
st.set_page_config(page_title=APP_NAME, page_icon="⛪", layout="wide")
configure_logging()
logger = logging.getLogger("tesouraria.app")

GLOBAL_UI_CSS = f"""
<style>
  .stButton>button, .stDownloadButton>button,
  [data-testid="stFormSubmitButton"] button{{
    background-color:{COLORS["primaryBlue"]}!important; border-color:{COLORS["primaryBlue"]}!important;
    color:#fff!important; border-radius:10px!important; font-weight:700;
  }}
  .stButton>button:hover, .stDownloadButton>button:hover,
  [data-testid="stFormSubmitButton"] button:hover{{
    background-color:{COLORS["accentBlue"]}!important; border-color:{COLORS["accentBlue"]}!important;
  }}
  .page-title{{ color:{COLORS["primaryBlue"]}; font-weight:800; margin-bottom:.25rem; }}
  .tes-logo{{ text-align:center; font-weight:900; font-size:clamp(30px,5vw,48px);
             color:{COLORS["primaryBlue"]}; margin:5vh 0 0; }}
  .tes-logo span{{ color:{COLORS["secondaryYellow"]}; }}
</style>
"""


def ui_global_bootstrap():
    st.markdown(GLOBAL_UI_CSS, unsafe_allow_html=True)


# ===================== AUTH COOKIE =====================
COOKIE_NAME = "tes3ipi_auth"
LAST_COOKIE = "tes3ipi_last"


def get_cookie_manager():
    import extra_streamlit_components as stx
    if "cookie_mgr" not in st.session_state:
        st.session_state["cookie_mgr"] = stx.CookieManager()
    return st.session_state["cookie_mgr"]


def _update_last_active(cm):
    cm.set(LAST_COOKIE, str(int(time.time())), expires_at=datetime.now() + timedelta(days=SESSION_DAYS), key="last_set")


def _check_inactivity_and_logout(cm):
    last = cm.get(LAST_COOKIE)
    if not last:
        return
    try:
        last_ts = int(str(last))
    except ValueError:
        return
    if int(time.time()) - last_ts > INACTIVITY_MINUTES * 60:
        logger.info("Sessão encerrada por inatividade (uid=%s)", st.session_state.get("uid"))
        logout()


def logout():
    st.session_state.uid = None
    st.session_state.pop("nav", None)
    cm = get_cookie_manager()
    for name, key in ((COOKIE_NAME, "auth_del"), (LAST_COOKIE, "last_del")):
        if cm.get(name) is not None:
            cm.delete(name, key=key)
    st.rerun()


# ===================== SESSION / LOGIN =====================
if "uid" not in st.session_state:
    st.session_state.uid = None


def current_user():
    uid = st.session_state.get("uid")
    if not uid:
        return None
    with SessionLocal() as db:
        return db.get(User, uid)


def _restore_from_cookie(cm) -> bool:
    data = auth.read_token(cm.get(COOKIE_NAME))
    if not data:
        return False
    with SessionLocal() as db:
        u = db.get(User, int(data.get("uid", 0)))
    if u is None:
        return False
    st.session_state.uid = u.id
    return True


def login_ui():
    st.markdown('<div class="tes-logo">3IPI <span>Tesouraria</span></div>', unsafe_allow_html=True)
    st.caption("Sistema de gestão financeira da igreja")
    st.session_state.setdefault("auth_msg", "")

    _, col, _ = st.columns([1, 2, 1])
    with col:
        tab_login, tab_signup = st.tabs(["Entrar", "Criar conta"])
        with tab_login:
            with st.form("form_login"):
                email = st.text_input("E-mail", key="login_email")
                pwd = st.text_input("Senha", type="password", key="login_pwd")
                lembrar = st.checkbox("Manter conectado", value=True)
                ok = st.form_submit_button("Acessar", type="primary")

            if ok:
                if not email.strip() or not pwd:
                    st.session_state.auth_msg = "Informe e-mail e senha."
                else:
                    with SessionLocal() as db:
                        user = auth.authenticate(db, email, pwd)
                    if user is None:
                        st.session_state.auth_msg = "E-mail ou senha incorretos."
                    else:
                        st.session_state.uid = user.id
                        st.session_state.auth_msg = ""
                        if lembrar:
                            cm = get_cookie_manager()
                            cm.set(COOKIE_NAME, auth.make_token({"uid": user.id}),
                                   expires_at=datetime.now() + timedelta(days=SESSION_DAYS), key="auth_set")
                            _update_last_active(cm)
                        st.rerun()

            if st.session_state.auth_msg:
                st.warning(st.session_state.auth_msg)
        with tab_signup:
            pages.signup_ui()


# ===================== SIDEBAR =====================
MENU_ALL = ["Painel", "Resumo do Mês", "Lançamentos", "Análise", "Relatório Mensal"]
MENU_ADMIN = MENU_ALL + ["Usuários"]

ROUTES = {
    "Painel": pages.page_painel,
    "Resumo do Mês": pages.page_resumo_mes,
    "Lançamentos": pages.page_lancamentos,
    "Análise": pages.page_analise,
    "Relatório Mensal": pages.page_relatorio_mensal,
    "Usuários": pages.page_usuarios,
}


def sidebar_common(user: User) -> str:
    options = MENU_ADMIN if auth.is_admin(user) else MENU_ALL

    session_key = "nav"
    if st.session_state.get(session_key) not in options:
        st.session_state.pop(session_key, None)

    with st.sidebar:
        st.markdown(f"### {user.name}")
        st.caption(f"{user.email} • {user.role_label}")

        page = st.radio(label="Menu", options=options, key=session_key, label_visibility="collapsed")

        if is_dev():
            st.info("**Ambiente: DESENVOLVIMENTO**  \n(SQLite Local)")

        if st.button("Sair"):
            auth.audit(user, "logout")
            logout()

    return page


# ===================== MAIN =====================
def main():
    try:
        ui_global_bootstrap()
        init_db()
        with SessionLocal() as db:
            auth.ensure_seed(db)

        cm = get_cookie_manager()
        if not st.session_state.uid and _restore_from_cookie(cm):
            st.rerun()

        user = current_user()
        if user is None:
            st.session_state.uid = None
            login_ui()
            return

        _check_inactivity_and_logout(cm)
        _update_last_active(cm)

        page = sidebar_common(user)
        ROUTES.get(page, pages.page_painel)(user)

    except Exception as e:
        logger.exception("Erro não tratado na aplicação")
        st.error("Ocorreu um erro crítico na aplicação.")
        st.exception(e)


if __name__ == "__main__":
    main()
