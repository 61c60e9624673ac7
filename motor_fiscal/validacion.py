"""Validacion cruzada del IRPF retenido contra las facturas pagadas.

Detecta el caso en que hay facturas con retencion IRPF (tasa negativa) pero
el total extraido es casi cero, lo que suele indicar un error de captura
aguas arriba. La correccion es una heuristica, no una regla fiscal: se
aisla en politicas con nombre para poder sustituirla por un modo estricto.
"""

from decimal import Decimal
from typing import Callable, Dict, Sequence

from loguru import logger

from config.settings import MODO_SOLO_REVISION, MODO_SUSTITUIR, ParametrosFiscales
from motor_fiscal.impuestos import tiene_irpf_retenido
from motor_fiscal.models import CorreccionIrpf, Factura, ValidacionIrpf


def validar_irpf(
    facturas_pagadas: Sequence[Factura],
    irpf_retenido: Decimal,
    umbral: Decimal = ParametrosFiscales().umbral_irpf_sospechoso,
) -> ValidacionIrpf:
    """Valida que el IRPF retenido sea coherente con las facturas.

    Returns:
        ValidacionIrpf invalida si hay facturas con IRPF negativo y el total
        retenido es menor que el umbral.
    """
    con_irpf = sum(
        1 for f in facturas_pagadas
        if f.pagada and tiene_irpf_retenido(f)
    )

    if con_irpf > 0 and irpf_retenido < umbral:
        return ValidacionIrpf(
            es_valido=False,
            mensaje=(
                f"Posible error en calculo de IRPF: se encontraron {con_irpf} "
                f"facturas con IRPF pero el total calculado es muy bajo "
                f"({irpf_retenido:.2f} EUR)"
            ),
            facturas_con_irpf=con_irpf,
        )

    return ValidacionIrpf(
        es_valido=True,
        mensaje='Validacion de IRPF correcta',
        facturas_con_irpf=con_irpf,
    )


# --- Politicas de correccion ---

PoliticaCorreccion = Callable[
    [ValidacionIrpf, Decimal, Decimal, ParametrosFiscales], CorreccionIrpf
]


def corregir_sustituyendo(
    validacion: ValidacionIrpf,
    irpf_retenido: Decimal,
    base_imponible: Decimal,
    parametros: ParametrosFiscales,
) -> CorreccionIrpf:
    """Sustituye el IRPF anomalo por base * tasa estimada.

    Solo actua si la validacion fallo y la base supera el umbral de
    correccion; en otro caso se conserva el valor original.
    """
    if validacion.es_valido:
        return CorreccionIrpf(irpf_retenido_ingresos=irpf_retenido)

    if base_imponible > parametros.umbral_base_correccion:
        corregido = base_imponible * parametros.tasa_irpf_estimada / Decimal('100')
        logger.info(
            "Corrigiendo IRPF retenido: {:.2f} -> {:.2f} ({}% de base {:.2f})",
            irpf_retenido, corregido, parametros.tasa_irpf_estimada, base_imponible,
        )
        return CorreccionIrpf(
            irpf_retenido_ingresos=corregido,
            corregido=True,
            valor_original=irpf_retenido,
        )

    logger.info(
        "IRPF anomalo sin correccion: base {:.2f} no supera {}",
        base_imponible, parametros.umbral_base_correccion,
    )
    return CorreccionIrpf(irpf_retenido_ingresos=irpf_retenido)


def solo_revision(
    validacion: ValidacionIrpf,
    irpf_retenido: Decimal,
    base_imponible: Decimal,
    parametros: ParametrosFiscales,
) -> CorreccionIrpf:
    """Nunca sustituye: marca el resultado para revision manual."""
    return CorreccionIrpf(
        irpf_retenido_ingresos=irpf_retenido,
        requiere_revision=not validacion.es_valido,
    )


POLITICAS_CORRECCION: Dict[str, PoliticaCorreccion] = {
    MODO_SUSTITUIR: corregir_sustituyendo,
    MODO_SOLO_REVISION: solo_revision,
}


def obtener_politica(modo: str) -> PoliticaCorreccion:
    """Politica para un modo; un modo desconocido usa la sustitucion."""
    politica = POLITICAS_CORRECCION.get(modo)
    if politica is None:
        logger.warning(
            "Modo de correccion desconocido '{}', se usa '{}'", modo, MODO_SUSTITUIR,
        )
        return corregir_sustituyendo
    return politica
