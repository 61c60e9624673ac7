"""Utilidades de normalizacion de montos, fechas y lineas de impuesto.

Todos los parsers son tolerantes: un valor que no se puede interpretar se
convierte en Decimal('0') o None, nunca lanza excepcion.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from motor_fiscal.models import TipoImpuesto


def a_decimal(valor, defecto: Decimal = Decimal('0')) -> Decimal:
    """Convierte un valor arbitrario a Decimal de forma segura.

    Maneja Decimal, int, float, string con formato de moneda ("1.234,56 €"
    o "$1,234.56"). Cualquier valor no interpretable devuelve `defecto`.
    """
    resultado = decimal_opcional(valor)
    return defecto if resultado is None else resultado


def decimal_opcional(valor) -> Optional[Decimal]:
    """Como a_decimal, pero devuelve None si el valor falta o no es numerico."""
    if valor is None or isinstance(valor, bool):
        return None

    if isinstance(valor, Decimal):
        return valor if valor.is_finite() else None

    if isinstance(valor, int):
        return Decimal(valor)

    if isinstance(valor, float):
        if valor != valor or valor in (float('inf'), float('-inf')):
            return None
        return Decimal(str(valor))

    if isinstance(valor, str):
        limpio = _limpiar_monto(valor)
        if not limpio or limpio in ('-', '+'):
            return None
        try:
            resultado = Decimal(limpio)
        except InvalidOperation:
            return None
        return resultado if resultado.is_finite() else None

    return None


def _limpiar_monto(texto: str) -> str:
    """Quita simbolos de moneda y separadores de miles."""
    limpio = texto.replace('€', '').replace('$', '').replace('%', '')
    limpio = limpio.replace('\xa0', '').replace(' ', '').strip()

    # Formato europeo: 1.234,56 -> 1234.56
    if ',' in limpio and '.' in limpio:
        if limpio.rfind(',') > limpio.rfind('.'):
            limpio = limpio.replace('.', '').replace(',', '.')
        else:
            limpio = limpio.replace(',', '')
    elif ',' in limpio:
        limpio = limpio.replace(',', '.')

    return limpio


def parsear_fecha(valor) -> Optional[date]:
    """Convierte un valor (celda Excel, ISO string, datetime) a date.

    Maneja datetime, date, string (AAAA-MM-DD, ISO con hora, DD/MM/AAAA) y
    numeros seriales de Excel.
    """
    if valor is None:
        return None

    if isinstance(valor, datetime):
        return valor.date()

    if isinstance(valor, date):
        return valor

    if isinstance(valor, (int, float)) and not isinstance(valor, bool):
        # Numero serial de Excel (epoch 1899-12-30)
        try:
            base = datetime(1899, 12, 30)
            return (base + timedelta(days=int(valor))).date()
        except (ValueError, OverflowError):
            return None

    if isinstance(valor, str):
        valor = valor.strip()
        if not valor:
            return None
        try:
            return datetime.fromisoformat(valor.replace('Z', '+00:00')).date()
        except ValueError:
            pass
        for fmt in ('%d/%m/%Y', '%d-%m-%Y', '%Y/%m/%d', '%d/%m/%y'):
            try:
                return datetime.strptime(valor, fmt).date()
            except ValueError:
                continue
        return None

    return None


def clasificar_impuesto(nombre: Optional[str]) -> TipoImpuesto:
    """Resuelve la clase de una linea de impuesto por su nombre.

    IRPF si el nombre contiene "irpf" (sin distinguir mayusculas); IVA si
    contiene la palabra "iva" o "vat"; cualquier otro caso es OTRO.
    """
    if not nombre:
        return TipoImpuesto.OTRO

    nombre_min = str(nombre).lower()
    if 'irpf' in nombre_min:
        return TipoImpuesto.IRPF
    if _RE_IVA.search(nombre_min):
        return TipoImpuesto.IVA
    return TipoImpuesto.OTRO


# Palabra completa: "privado" no es IVA
_RE_IVA = re.compile(r'\b(iva|vat)\b')
