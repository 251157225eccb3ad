# tesouraria/constants.py
from datetime import date

TIPO_ENTRADA = "Entrada"
TIPO_SAIDA = "Saída"
TIPO_ENTRADA_PROJETO = "Entrada (Projeto)"
TIPO_SAIDA_PROJETO = "Saída (Projeto)"

TIPOS = (TIPO_ENTRADA, TIPO_SAIDA, TIPO_ENTRADA_PROJETO, TIPO_SAIDA_PROJETO)
TIPOS_GERAIS = (TIPO_ENTRADA, TIPO_SAIDA)
TIPOS_PROJETO = (TIPO_ENTRADA_PROJETO, TIPO_SAIDA_PROJETO)
TIPOS_ENTRADA = (TIPO_ENTRADA, TIPO_ENTRADA_PROJETO)

METODO_PIX = "Pix"
METODO_ESPECIE = "Espécie"
METODOS = (METODO_PIX, METODO_ESPECIE)

MONTHS = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]

ROLE_ADMIN = "ADMIN"
ROLE_TESOUREIRO = "TESOUREIRO"
ROLES = (ROLE_ADMIN, ROLE_TESOUREIRO)
ROLE_LABELS = {ROLE_ADMIN: "Administrador", ROLE_TESOUREIRO: "Tesoureiro"}

COLORS = {
    "primaryBlue": "#1E40AF",
    "secondaryYellow": "#FBBF24",
    "accentBlue": "#3B82F6",
}

PAGE_SIZES = (5, 10, 20, 50)

SAMPLE_TRANSACTIONS = [
    {
        "movimento": "Dízimos e Ofertas - Culto Manhã",
        "tipo": TIPO_ENTRADA,
        "valor": 1500.00,
        "metodo": METODO_PIX,
        "data": date(2024, 3, 1),
        "mes": "Março",
        "responsavel": "Tesouraria",
    },
    {
        "movimento": "Pagamento Energia Elétrica",
        "tipo": TIPO_SAIDA,
        "valor": 450.30,
        "metodo": METODO_PIX,
        "data": date(2024, 3, 5),
        "mes": "Março",
        "responsavel": "Administração",
    },
    {
        "movimento": "Oferta Especial Missões",
        "tipo": TIPO_ENTRADA,
        "valor": 800.00,
        "metodo": METODO_ESPECIE,
        "data": date(2024, 3, 10),
        "mes": "Março",
        "responsavel": "Tesouraria",
    },
]
