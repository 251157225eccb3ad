# tesouraria/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .constants import ROLE_LABELS, ROLE_TESOUREIRO, TIPOS_ENTRADA, TIPOS_PROJETO
from .db import Base
from .utils import month_number

# Tipos: "Entrada" | "Saída" | "Entrada (Projeto)" | "Saída (Projeto)"


class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_TESOUREIRO)  # ADMIN | TESOUREIRO
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    @property
    def role_label(self) -> str:
        return ROLE_LABELS.get(self.role, self.role)


class Transaction(Base):
    """Lançamento do livro-caixa."""

    __tablename__ = "transactions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    movimento: Mapped[str] = mapped_column(String(255), nullable=False)
    tipo: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    valor: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    metodo: Mapped[str] = mapped_column(String(20), nullable=False)
    data: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    mes: Mapped[str] = mapped_column(String(20), nullable=False)
    responsavel: Mapped[str] = mapped_column(String(120), nullable=False)
    contribuinte: Mapped[Optional[str]] = mapped_column(String(120))
    projeto: Mapped[Optional[str]] = mapped_column(String(120), index=True)
    # data URL (base64) da imagem ou PDF
    comprovante: Mapped[Optional[str]] = mapped_column(Text)
    observacoes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def is_entrada(self) -> bool:
        return self.tipo in TIPOS_ENTRADA

    @property
    def is_projeto(self) -> bool:
        return self.tipo in TIPOS_PROJETO

    @property
    def competencia(self) -> date:
        """Primeiro dia do mês de competência.

        Um mês posterior ao da data é do ano anterior (conta de dezembro paga em janeiro).
        """
        mes_num = month_number(self.mes or "") or self.data.month
        ano = self.data.year - 1 if mes_num > self.data.month else self.data.year
        return date(ano, mes_num, 1)

    @property
    def ano(self) -> int:
        """Ano de competência."""
        return self.competencia.year
