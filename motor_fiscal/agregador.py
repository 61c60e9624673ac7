"""Agregacion de facturas pagadas y gastos resueltos del periodo.

Cada registro se procesa de forma aislada y produce un ResultadoRegistro.
El agregador pliega sobre esos resultados: suma los exitos y convierte los
errores en advertencias. Ninguna suma se redondea aqui.
"""

from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence

from loguru import logger

from config.settings import ParametrosFiscales
from motor_fiscal.gastos import calcular_deducibles, resolver_gasto
from motor_fiscal.impuestos import (
    ErrorRegistro,
    comprobar_importes,
    estimar_irpf,
    extraer_irpf,
)
from motor_fiscal.models import (
    Advertencia,
    Factura,
    GastoResuelto,
    RegistroFiscalGasto,
    ResultadoRegistro,
    Totales,
    Transaccion,
)

# Errores esperables al procesar un registro con forma inesperada
ERRORES_REGISTRO = (ErrorRegistro, ArithmeticError, TypeError, ValueError, AttributeError)


def procesar_facturas(
    facturas_pagadas: Sequence[Factura],
    parametros: ParametrosFiscales = ParametrosFiscales(),
    advertencias: Optional[List[Advertencia]] = None,
) -> List[ResultadoRegistro]:
    """Extrae el IRPF retenido de cada factura pagada.

    Si la extraccion falla, se estima subtotal * tasa IRPF estimada y se
    continua: el resultado sigue siendo un exito (degradado) con aviso.
    Una factura con importes fuera de rango, o cuya estimacion tambien
    falla, produce un resultado de error y queda fuera de los totales.

    Devuelve un resultado por factura, en el mismo orden.
    """
    if advertencias is None:
        advertencias = []

    resultados = []
    for factura in facturas_pagadas:
        try:
            irpf = _irpf_factura(factura, parametros, advertencias)
        except ERRORES_REGISTRO as e:
            logger.warning("Factura {} excluida de los totales: {}", factura.id, e)
            resultados.append(ResultadoRegistro(
                registro_id=factura.id,
                error=f"Factura excluida de los totales: {e}",
            ))
            continue
        resultados.append(ResultadoRegistro(registro_id=factura.id, valor=irpf))

    return resultados


def _irpf_factura(
    factura: Factura,
    parametros: ParametrosFiscales,
    advertencias: List[Advertencia],
) -> Decimal:
    limite = parametros.importe_maximo
    comprobar_importes(factura.id, (factura.subtotal, factura.total), limite)

    try:
        irpf, avisos = extraer_irpf(factura)
        comprobar_importes(factura.id, (irpf,), limite)
    except ERRORES_REGISTRO as e:
        irpf = estimar_irpf(factura, parametros.tasa_irpf_estimada)
        comprobar_importes(factura.id, (irpf,), limite)
        avisos = [
            f"Error procesando IRPF ({e}); se estima "
            f"{parametros.tasa_irpf_estimada}% = {irpf:.2f}"
        ]

    for aviso in avisos:
        logger.warning("Factura {}: {}", factura.id, aviso)
        advertencias.append(Advertencia('factura', factura.id, aviso))
    return irpf


def procesar_gastos(
    transacciones_gasto: Sequence[Transaccion],
    registros_por_transaccion: Mapping[Any, RegistroFiscalGasto],
    parametros: ParametrosFiscales = ParametrosFiscales(),
) -> List[ResultadoRegistro]:
    """Resuelve cada gasto y sus deducibles; un fallo excluye solo ese gasto."""
    resultados = []
    for transaccion in transacciones_gasto:
        try:
            desglose = resolver_gasto(transaccion, registros_por_transaccion, parametros)
            comprobar_importes(
                transaccion.id,
                (desglose.importe_neto, desglose.importe_iva,
                 desglose.importe_irpf, desglose.importe_total),
                parametros.importe_maximo,
            )
            gasto_deducible, iva_deducible = calcular_deducibles(desglose)
            resultados.append(ResultadoRegistro(
                registro_id=transaccion.id,
                valor=GastoResuelto(desglose, gasto_deducible, iva_deducible),
            ))
        except ERRORES_REGISTRO as e:
            logger.warning("Error procesando gasto {}: {}", transaccion.id, e)
            resultados.append(ResultadoRegistro(registro_id=transaccion.id, error=str(e)))
    return resultados


def agregar(
    facturas_pagadas: Sequence[Factura],
    resultados_facturas: Sequence[ResultadoRegistro],
    resultados_gastos: Sequence[ResultadoRegistro],
    parametros: ParametrosFiscales = ParametrosFiscales(),
) -> Totales:
    """Suma ingresos, IVA, IRPF y gastos del periodo a precision completa.

    resultados_facturas se corresponde uno a uno con facturas_pagadas
    (salida de procesar_facturas); una factura con error no suma nada.
    """
    totales = Totales()

    # --- Ingresos (facturas pagadas) ---
    for factura, resultado in zip(facturas_pagadas, resultados_facturas):
        if not resultado.ok:
            totales.advertencias.append(
                Advertencia('factura', resultado.registro_id, resultado.error)
            )
            continue
        totales.base_imponible += factura.subtotal
        totales.ingresos_facturas += factura.total
        totales.irpf_retenido_ingresos += resultado.valor

    if totales.base_imponible > 0:
        totales.iva_repercutido = totales.ingresos_facturas - totales.base_imponible
    else:
        # Sin base granular: se estima el IVA general sobre el total
        totales.iva_repercutido = (
            totales.ingresos_facturas * parametros.tasa_iva_general / Decimal('100')
        )

    # --- Gastos ---
    for resultado in resultados_gastos:
        if not resultado.ok:
            totales.advertencias.append(Advertencia(
                'transaccion', resultado.registro_id,
                f"Gasto excluido de los totales: {resultado.error}",
            ))
            continue

        gasto: GastoResuelto = resultado.valor
        desglose = gasto.desglose

        totales.base_imponible_gastos += desglose.importe_neto
        totales.iva_soportado += desglose.importe_iva
        totales.irpf_gastos += desglose.importe_irpf
        totales.total_gastos += desglose.importe_total
        totales.gastos_deducibles += gasto.gasto_deducible
        totales.iva_deducible += gasto.iva_deducible
        totales.gastos_procesados += 1
        if desglose.estimado:
            totales.gastos_estimados += 1

    logger.debug(
        "Totales: base={} | IVA rep={} | IRPF ret={} | base gastos={} | IVA sop={}",
        totales.base_imponible, totales.iva_repercutido, totales.irpf_retenido_ingresos,
        totales.base_imponible_gastos, totales.iva_soportado,
    )
    return totales
