"""Ingesta de registros crudos (dicts del almacenamiento) a modelos.

Las colecciones llegan como listas de dicts con los nombres de campo del
almacenamiento (camelCase: issueDate, subtotal, additionalTaxes...). Aqui se
interpretan una sola vez: montos a Decimal, fechas a date, y cada linea de
impuesto adicional se clasifica en IVA / IRPF / OTRO.

Un registro con forma inesperada no aborta la ingesta: se registra la
advertencia y el registro se omite (o, para el arreglo de impuestos de una
factura, se marca con error_impuestos para que el extractor estime).
"""

import json
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from motor_fiscal.entrada.normalizacion import (
    a_decimal,
    clasificar_impuesto,
    decimal_opcional,
    parsear_fecha,
)
from motor_fiscal.models import (
    Advertencia,
    EstadoFactura,
    Factura,
    LineaImpuesto,
    RegistroFiscalGasto,
    TipoTransaccion,
    Transaccion,
)


class ErrorIngesta(ValueError):
    """El arreglo de impuestos adicionales no tiene la forma esperada."""


def factura_desde_dict(raw: Mapping[str, Any]) -> Factura:
    """Construye una Factura a partir de una fila del almacenamiento."""
    error_impuestos = None
    try:
        impuestos = parsear_impuestos_adicionales(raw.get('additionalTaxes'))
    except ErrorIngesta as e:
        impuestos = ()
        error_impuestos = str(e)

    return Factura(
        id=raw.get('id'),
        fecha_emision=parsear_fecha(raw.get('issueDate')),
        fecha_vencimiento=parsear_fecha(raw.get('dueDate')),
        subtotal=a_decimal(raw.get('subtotal')),
        total=a_decimal(raw.get('total')),
        estado=_enum_o_none(EstadoFactura, raw.get('status')),
        impuestos_adicionales=impuestos,
        error_impuestos=error_impuestos,
    )


def transaccion_desde_dict(raw: Mapping[str, Any]) -> Transaccion:
    """Construye una Transaccion. Un importe ausente queda como None."""
    importe_raw = raw.get('amount')
    importe = None if importe_raw in (None, '') else a_decimal(importe_raw)

    return Transaccion(
        id=raw.get('id'),
        fecha=parsear_fecha(raw.get('date')),
        importe=importe,
        tipo=_enum_o_none(TipoTransaccion, raw.get('type')),
    )


def registro_fiscal_desde_dict(raw: Mapping[str, Any]) -> RegistroFiscalGasto:
    """Construye un RegistroFiscalGasto conservando los vacios como None."""
    return RegistroFiscalGasto(
        transaccion_id=raw.get('transactionId'),
        importe_neto=decimal_opcional(raw.get('netAmount')),
        importe_iva=decimal_opcional(raw.get('vatAmount')),
        tasa_iva=decimal_opcional(raw.get('vatRate')),
        porcentaje_iva_deducible=decimal_opcional(raw.get('vatDeductiblePercent')),
        importe_irpf=decimal_opcional(raw.get('irpfAmount')),
        tasa_irpf=decimal_opcional(raw.get('irpfRate')),
        importe_total=decimal_opcional(raw.get('totalAmount')),
        porcentaje_deducible=decimal_opcional(raw.get('deductiblePercent')),
        deducible_impuesto_sociedades=_bool(raw.get('deductibleForCorporateTax'), True),
        deducible_irpf=_bool(raw.get('deductibleForIrpf'), True),
    )


def parsear_impuestos_adicionales(valor) -> Tuple[LineaImpuesto, ...]:
    """Interpreta el arreglo de impuestos adicionales de una factura.

    Acepta una lista de dicts {name, rate} o su serializacion JSON. La tasa
    se lee de 'rate' (o de 'amount' en filas antiguas); una tasa no numerica
    vale 0.

    Raises:
        ErrorIngesta: si el valor no es una lista de objetos.
    """
    if valor is None or valor == '':
        return ()

    if isinstance(valor, str):
        try:
            valor = json.loads(valor)
        except ValueError as e:
            raise ErrorIngesta(f"additionalTaxes no es JSON valido: {e}") from e

    if not isinstance(valor, (list, tuple)):
        raise ErrorIngesta(
            f"additionalTaxes debe ser una lista, no {type(valor).__name__}"
        )

    lineas = []
    for entrada in valor:
        if entrada is None:
            continue
        if not isinstance(entrada, Mapping):
            raise ErrorIngesta(f"Linea de impuesto con forma inesperada: {entrada!r}")

        nombre = str(entrada.get('name') or '').strip()
        tasa_raw = entrada.get('rate')
        if tasa_raw is None:
            tasa_raw = entrada.get('amount')

        lineas.append(LineaImpuesto(
            nombre=nombre,
            tasa=a_decimal(tasa_raw),
            tipo=clasificar_impuesto(nombre),
        ))

    return tuple(lineas)


def ingerir(
    filas: Iterable[Any],
    constructor,
    origen: str,
    advertencias: Optional[List[Advertencia]] = None,
) -> List:
    """Aplica un constructor a cada fila, omitiendo las que fallen.

    Args:
        filas: Filas crudas (dicts).
        constructor: factura_desde_dict, transaccion_desde_dict, etc.
        origen: Etiqueta para las advertencias ('factura', 'transaccion'...).
        advertencias: Lista donde acumular avisos (opcional).
    """
    resultado = []
    for fila in filas:
        registro_id = fila.get('id') if isinstance(fila, Mapping) else None
        try:
            if not isinstance(fila, Mapping):
                raise TypeError(f"se esperaba un dict, no {type(fila).__name__}")
            resultado.append(constructor(fila))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Registro {} {} omitido en la ingesta: {}", origen, registro_id, e)
            if advertencias is not None:
                advertencias.append(Advertencia(
                    origen=origen,
                    registro_id=registro_id,
                    mensaje=f"Omitido en la ingesta: {e}",
                ))

    return resultado


def _enum_o_none(enum_cls, valor):
    """Convierte a enum sin distinguir mayusculas; None si no existe."""
    if valor is None:
        return None
    try:
        return enum_cls(str(valor).strip().lower())
    except ValueError:
        return None


def _bool(valor, defecto: bool) -> bool:
    """Interpreta banderas que llegan como bool, numero o texto."""
    if valor is None or valor == '':
        return defecto
    if isinstance(valor, bool):
        return valor
    if isinstance(valor, (int, float)):
        return valor != 0
    return str(valor).strip().lower() in ('true', '1', 'si', 'sí', 'yes', 'x')
