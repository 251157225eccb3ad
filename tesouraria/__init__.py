# tesouraria/__init__.py
"""Tesouraria — livro-caixa da igreja (lançamentos, fundos de projetos, painéis)."""

__version__ = "1.0.0"
