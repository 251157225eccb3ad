# tesouraria/utils.py
from __future__ import annotations

import math
import re
import unicodedata as ud
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Tuple

from babel.numbers import format_currency as _fmt_cur

from .constants import MONTHS


def format_currency(value: Any) -> str:
    """R$ 1.234,56 em pt-BR."""
    try:
        v = float(value or 0.0)
    except (TypeError, ValueError):
        v = 0.0
    if math.isnan(v):
        v = 0.0
    # babel usa espaço não separável entre o símbolo e o número
    return _fmt_cur(v, "BRL", locale="pt_BR").replace("\xa0", " ")


def format_date(d: Optional[date]) -> str:
    """dd/mm/aaaa em pt-BR."""
    if d is None:
        return ""
    return d.strftime("%d/%m/%Y")


_THOUSANDS_ONLY = re.compile(r"-?\d{1,3}\.\d{3}")


def parse_brl(x: Any) -> float:
    """Converte 'R$ 1.234,56', '1234,56', '1234.56' ou números em float (0.0 se inválido)."""
    if x is None or isinstance(x, bool):
        return 0.0
    if isinstance(x, (int, float, Decimal)):
        v = float(x)
        return 0.0 if math.isnan(v) else v
    s = str(x).replace("R$", "").replace('"', "")
    s = s.replace("\xa0", "").replace(" ", "").strip()
    if not s:
        return 0.0
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    elif s.count(".") > 1 or _THOUSANDS_ONLY.fullmatch(s):
        s = s.replace(".", "")
    try:
        return float(s)
    except ValueError:
        return 0.0


def parse_date(obj: Any) -> Optional[date]:
    if isinstance(obj, datetime):
        return obj.date()
    if isinstance(obj, date):
        return obj
    s = str(obj or "").strip()
    if not s:
        return None
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def norm(s: str) -> str:
    s = (s or "").strip().lower()
    s = ud.normalize("NFD", s)
    return "".join(c for c in s if ud.category(c) != "Mn").replace(" ", "")


def month_name(n: int) -> str:
    return MONTHS[n - 1]


def month_number(name: str) -> Optional[int]:
    key = norm(name)
    for i, m in enumerate(MONTHS, start=1):
        if norm(m) == key:
            return i
    return None


def month_bounds(ref: date) -> Tuple[date, date]:
    start = ref.replace(day=1)
    end = date(start.year + (start.month == 12), (start.month % 12) + 1, 1)
    return start, end


def today() -> date:
    return datetime.now().date()
