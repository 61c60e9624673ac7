"""Construccion del ResumenFiscal a partir de los totales del periodo.

Es el unico punto donde se redondea: cada campo se deriva de las sumas a
precision completa y se lleva al entero mas cercano (mitades hacia +inf,
99.5 -> 100, -2.5 -> -2).
"""

from datetime import date
from decimal import ROUND_FLOOR, Decimal
from typing import Sequence

from loguru import logger

from config.settings import IMPORTE_MAXIMO
from motor_fiscal.models import (
    ConteoFacturas,
    EstadoFactura,
    Factura,
    ResumenFiscal,
    Totales,
)

MEDIO = Decimal('0.5')


def redondear(valor: Decimal) -> int:
    """Entero mas cercano; las mitades suben (floor(x + 0.5))."""
    return int((Decimal(valor) + MEDIO).to_integral_value(rounding=ROUND_FLOOR))


def contar_facturas(
    facturas: Sequence[Factura],
    hoy: date,
    limite: Decimal = IMPORTE_MAXIMO,
) -> ConteoFacturas:
    """Contadores de facturas del periodo.

    Pendientes = status pending u overdue. Vencidas = status overdue, o
    pending con vencimiento anterior a `hoy`. Un total pendiente de magnitud
    >= limite cuenta como factura pero no suma al importe pendiente.
    """
    pendientes = [f for f in facturas if f.pendiente]
    fuera_de_rango = [f for f in pendientes if abs(f.total) >= limite]
    for f in fuera_de_rango:
        logger.warning(
            "Factura pendiente {} con total fuera de rango; no suma al importe pendiente",
            f.id,
        )
    vencidas = [
        f for f in pendientes
        if f.estado == EstadoFactura.OVERDUE
        or (f.fecha_vencimiento is not None and f.fecha_vencimiento < hoy)
    ]
    return ConteoFacturas(
        total=len(facturas),
        pagadas=sum(1 for f in facturas if f.pagada),
        pendientes=len(pendientes),
        vencidas=len(vencidas),
        importe_pendiente=sum(
            (f.total for f in pendientes if abs(f.total) < limite), Decimal('0'),
        ),
    )


def construir_resumen(
    totales: Totales,
    irpf_retenido_ingresos: Decimal,
    conteo: ConteoFacturas,
) -> ResumenFiscal:
    """Deriva las cifras finales y las redondea.

    Args:
        totales: Sumas del agregador.
        irpf_retenido_ingresos: IRPF retenido ya validado/corregido; todo lo
            que depende de el se deriva de este valor.
        conteo: Contadores de facturas del periodo.
    """
    iva_a_liquidar = totales.iva_repercutido - totales.iva_soportado
    irpf_total = irpf_retenido_ingresos + totales.irpf_gastos
    resultado_neto = totales.base_imponible - totales.base_imponible_gastos - irpf_total
    resultado_fiscal = totales.base_imponible - totales.gastos_deducibles
    iva_a_ingresar = totales.iva_repercutido - totales.iva_deducible
    irpf_pagar = irpf_total - irpf_retenido_ingresos

    return ResumenFiscal(
        income=redondear(totales.base_imponible),
        expenses=redondear(totales.base_imponible_gastos),
        pending_invoices=redondear(conteo.importe_pendiente),
        pending_count=conteo.pendientes,
        base_imponible=redondear(totales.base_imponible),
        base_imponible_gastos=redondear(totales.base_imponible_gastos),
        iva_repercutido=redondear(totales.iva_repercutido),
        iva_soportado=redondear(totales.iva_soportado),
        irpf_retenido_ingresos=redondear(irpf_retenido_ingresos),
        irpf_gastos=redondear(totales.irpf_gastos),
        total_withholdings=redondear(irpf_total),
        net_income=redondear(totales.base_imponible),
        net_expenses=redondear(totales.base_imponible_gastos),
        net_result=redondear(resultado_neto),
        gastos_deducibles=redondear(totales.gastos_deducibles),
        iva_deducible=redondear(totales.iva_deducible),
        resultado_fiscal=redondear(resultado_fiscal),
        iva_a_ingresar=redondear(iva_a_ingresar),
        iva_a_liquidar=redondear(iva_a_liquidar),
        irpf_total=redondear(irpf_total),
        irpf_pagar=redondear(irpf_pagar),
        facturas_total=conteo.total,
        facturas_pendientes=conteo.pendientes,
        facturas_pagadas=conteo.pagadas,
        facturas_vencidas=conteo.vencidas,
        facturas_importe=redondear(totales.ingresos_facturas),
    )
