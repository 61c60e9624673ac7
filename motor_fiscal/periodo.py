"""Filtro de registros por periodo fiscal (anio / trimestre / mes).

Semantica:
  - Sin anio: pasan todos los registros.
  - Con anio: el anio calendario de la fecha debe coincidir (como string).
  - period 'Q1'..'Q4': solo el trimestre pedido (trimestre = ceil(mes/3)).
  - period 'all' o vacio: todo el anio.
  - Cualquier otro period: no pasa nada (fail-closed, sin excepcion).
"""

import re
from datetime import date
from typing import Iterable, List, Optional, Set, TypeVar

T = TypeVar('T')

PERIODO_TODO = 'all'

_RE_TRIMESTRE = re.compile(r'^Q([1-4])$')


def trimestre_de(fecha: date) -> int:
    """Trimestre natural de una fecha (1..4)."""
    return (fecha.month + 2) // 3


def trimestre_solicitado(period: Optional[str]) -> Optional[int]:
    """Numero de trimestre de un period 'Qn', o None si no es un trimestre."""
    if period is None:
        return None
    m = _RE_TRIMESTRE.match(str(period).strip().upper())
    return int(m.group(1)) if m else None


def en_periodo(
    fecha: Optional[date],
    year: Optional[str] = None,
    period: Optional[str] = PERIODO_TODO,
    month: Optional[int] = None,
) -> bool:
    """Indica si una fecha cae dentro del periodo solicitado."""
    if not year:
        return True

    if fecha is None:
        return False

    if str(fecha.year) != str(year).strip():
        return False

    if period and str(period).strip().lower() != PERIODO_TODO:
        trimestre = trimestre_solicitado(period)
        if trimestre is None or trimestre_de(fecha) != trimestre:
            return False

    if month is not None:
        if not _mes_valido(month) or fecha.month != int(month):
            return False

    return True


def filtrar_por_periodo(
    registros: Iterable[T],
    year: Optional[str] = None,
    period: Optional[str] = PERIODO_TODO,
    campo_fecha: str = 'fecha',
    month: Optional[int] = None,
) -> List[T]:
    """Selecciona los registros cuya fecha cae en el periodo.

    Args:
        registros: Facturas, transacciones o cualquier objeto con fecha.
        year: Anio de 4 digitos como string; None = todos los anios.
        period: 'all' o 'Q1'..'Q4'.
        campo_fecha: Atributo que contiene la fecha ('fecha_emision', 'fecha').
        month: Mes 1..12 para acotar aun mas (opcional).
    """
    return [
        r for r in registros
        if en_periodo(getattr(r, campo_fecha, None), year, period, month)
    ]


def anios_disponibles(*colecciones: Iterable, campo_fecha: str = 'fecha') -> List[int]:
    """Anios presentes en las colecciones, de mas reciente a mas antiguo.

    Cada coleccion puede usar su propio atributo de fecha; se prueba
    'fecha_emision' antes que campo_fecha.
    """
    anios: Set[int] = set()
    for coleccion in colecciones:
        for registro in coleccion:
            fecha = getattr(registro, 'fecha_emision', None) or getattr(registro, campo_fecha, None)
            if fecha is not None:
                anios.add(fecha.year)
    return sorted(anios, reverse=True)


def _mes_valido(month) -> bool:
    try:
        return 1 <= int(month) <= 12
    except (TypeError, ValueError):
        return False
