"""Extraccion de retenciones IRPF de las lineas de impuesto de una factura.

Una linea IRPF solo cuenta como retencion si su tasa es estrictamente
negativa. Importe retenido = subtotal * |tasa| / 100.
"""

from decimal import Decimal
from typing import Iterable, List, Tuple

from loguru import logger

from motor_fiscal.models import Factura, TipoImpuesto


class ErrorRegistro(Exception):
    """Un registro no se pudo procesar y debe omitirse o estimarse."""

    def __init__(self, registro_id, mensaje: str):
        super().__init__(mensaje)
        self.registro_id = registro_id
        self.mensaje = mensaje


def extraer_irpf(factura: Factura) -> Tuple[Decimal, List[str]]:
    """Calcula el IRPF retenido en una factura.

    Returns:
        (importe retenido, avisos de calidad de datos). Las lineas IRPF con
        tasa >= 0 no se suman y generan un aviso.

    Raises:
        ErrorRegistro: si el arreglo de impuestos de la factura no se pudo
            interpretar en la ingesta.
    """
    if factura.error_impuestos:
        raise ErrorRegistro(factura.id, factura.error_impuestos)

    retenido = Decimal('0')
    avisos: List[str] = []

    for linea in factura.impuestos_adicionales:
        if linea.tipo != TipoImpuesto.IRPF:
            continue

        if linea.tasa < 0:
            importe = factura.subtotal * abs(linea.tasa) / Decimal('100')
            retenido += importe
            logger.debug(
                "IRPF en factura {}: {}% sobre base {:.2f} = {:.2f}",
                factura.id, linea.tasa, factura.subtotal, importe,
            )
        else:
            avisos.append(
                f"IRPF con tasa no negativa ({linea.tasa}%) en factura "
                f"{factura.id}; deberia ser negativa"
            )

    return retenido, avisos


def estimar_irpf(factura: Factura, tasa_estimada: Decimal) -> Decimal:
    """Estimacion de respaldo: subtotal * tasa_estimada / 100."""
    return factura.subtotal * tasa_estimada / Decimal('100')


def tiene_irpf_retenido(factura: Factura) -> bool:
    """True si la factura tiene al menos una linea IRPF con tasa negativa."""
    return any(linea.es_retencion for linea in factura.impuestos_adicionales)


def comprobar_importes(registro_id, importes: Iterable[Decimal], limite: Decimal):
    """Rechaza registros con algun importe de magnitud >= limite.

    Raises:
        ErrorRegistro: con el primer importe fuera de rango.
    """
    for importe in importes:
        if importe is not None and abs(importe) >= limite:
            raise ErrorRegistro(
                registro_id, f"Importe fuera de rango ({importe:.6g}); limite {limite:.6g}",
            )
