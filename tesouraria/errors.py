# tesouraria/errors.py
from __future__ import annotations

from typing import Dict


class TesourariaError(Exception):
    """Erro base da aplicação."""


class ValidationError(TesourariaError):
    """Dados de formulário inválidos; `errors` mapeia campo -> mensagem."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__(" | ".join(self.errors.values()))


class AccessDenied(TesourariaError):
    pass


class NotFound(TesourariaError):
    pass
