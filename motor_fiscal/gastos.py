"""Resolucion fiscal de gastos y calculo de importes deducibles.

Para cada transaccion de gasto se obtiene un desglose (neto, IVA, IRPF,
total y porcentajes deducibles):
  - Si existe RegistroFiscalGasto para la transaccion, se usan sus campos.
  - Si no, se estima asumiendo que el importe bruto incluye IVA general.

Las banderas deducible_impuesto_sociedades / deducible_irpf NO intervienen
en el motor: solo los porcentajes limitan lo deducido. Las banderas se usan
en resumir_registros_fiscales y calcular_impuestos_gasto.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from config.settings import ParametrosFiscales
from motor_fiscal.entrada.normalizacion import a_decimal
from motor_fiscal.impuestos import ErrorRegistro
from motor_fiscal.models import (
    Advertencia,
    DesgloseGasto,
    ImpuestosGasto,
    RegistroFiscalGasto,
    ResumenGastosFiscal,
    Transaccion,
)

CIEN = Decimal('100')
CERO = Decimal('0')


def indexar_registros_fiscales(
    registros: Iterable[RegistroFiscalGasto],
    advertencias: Optional[List[Advertencia]] = None,
) -> Dict[Any, RegistroFiscalGasto]:
    """Indexa desgloses por transaccion_id para busqueda O(1).

    Si dos registros apuntan a la misma transaccion se conserva el primero.
    Las claves se normalizan a string para tolerar ids 5 / '5'.
    """
    indice: Dict[Any, RegistroFiscalGasto] = {}
    for registro in registros:
        if registro.transaccion_id is None:
            continue
        clave = _clave(registro.transaccion_id)
        if clave in indice:
            logger.warning(
                "Transaccion {} con mas de un desglose fiscal; se usa el primero",
                registro.transaccion_id,
            )
            if advertencias is not None:
                advertencias.append(Advertencia(
                    origen='registro_fiscal',
                    registro_id=registro.transaccion_id,
                    mensaje='Desglose fiscal duplicado ignorado',
                ))
            continue
        indice[clave] = registro
    return indice


def resolver_gasto(
    transaccion: Transaccion,
    registros_por_transaccion: Mapping[Any, RegistroFiscalGasto],
    parametros: ParametrosFiscales = ParametrosFiscales(),
) -> DesgloseGasto:
    """Resuelve el desglose fiscal de una transaccion de gasto.

    Raises:
        ErrorRegistro: si no hay desglose y la transaccion no trae importe.
    """
    clave = _clave(transaccion.id)
    registro = None if clave is None else registros_por_transaccion.get(clave)
    if registro is not None:
        return _desglose_desde_registro(transaccion, registro)

    if transaccion.importe is None:
        raise ErrorRegistro(transaccion.id, 'Gasto sin importe ni desglose fiscal')

    return estimar_desglose(transaccion, parametros)


def estimar_desglose(
    transaccion: Transaccion,
    parametros: ParametrosFiscales = ParametrosFiscales(),
) -> DesgloseGasto:
    """Estimacion: el importe bruto incluye IVA general (21% por defecto)."""
    importe = transaccion.importe
    neto = importe / parametros.factor_iva
    return DesgloseGasto(
        transaccion_id=transaccion.id,
        importe_neto=neto,
        importe_iva=importe - neto,
        importe_irpf=CERO,
        importe_total=importe,
        porcentaje_iva_deducible=CIEN,
        porcentaje_deducible=CIEN,
        estimado=True,
    )


def _desglose_desde_registro(
    transaccion: Transaccion,
    registro: RegistroFiscalGasto,
) -> DesgloseGasto:
    """Desglose real; los vacios toman sus valores por defecto."""
    return DesgloseGasto(
        transaccion_id=transaccion.id,
        importe_neto=_o(registro.importe_neto, CERO),
        importe_iva=_o(registro.importe_iva, CERO),
        importe_irpf=_o(registro.importe_irpf, CERO),
        importe_total=_o(registro.importe_total, CERO),
        porcentaje_iva_deducible=_porcentaje(registro.porcentaje_iva_deducible, transaccion.id),
        porcentaje_deducible=_porcentaje(registro.porcentaje_deducible, transaccion.id),
    )


def calcular_deducibles(desglose: DesgloseGasto) -> Tuple[Decimal, Decimal]:
    """Importes deducibles de un gasto.

    Returns:
        (gasto deducible = neto * %deducible, IVA deducible = IVA * %IVA deducible)
    """
    gasto_deducible = desglose.importe_neto * desglose.porcentaje_deducible / CIEN
    iva_deducible = desglose.importe_iva * desglose.porcentaje_iva_deducible / CIEN
    return gasto_deducible, iva_deducible


def calcular_impuestos_gasto(
    importe_neto,
    tasa_iva=CERO,
    tasa_irpf=CERO,
    porcentaje_iva_deducible: Optional[Decimal] = None,
    porcentaje_deducible: Optional[Decimal] = None,
    deducible_impuesto_sociedades: bool = True,
    deducible_irpf: bool = True,
) -> ImpuestosGasto:
    """Deriva los impuestos de un gasto a partir del neto y sus tipos.

    IVA = neto * tipo IVA, IRPF = neto * tipo IRPF, total = neto + IVA - IRPF.
    Los importes deducibles por impuesto de sociedades / IRPF valen 0 si la
    bandera correspondiente es False.
    """
    neto = a_decimal(importe_neto)
    pct_iva_deducible = _o(porcentaje_iva_deducible, CIEN)
    pct_deducible = _o(porcentaje_deducible, CIEN)

    iva = neto * a_decimal(tasa_iva) / CIEN
    irpf = neto * a_decimal(tasa_irpf) / CIEN
    deducible = neto * pct_deducible / CIEN

    return ImpuestosGasto(
        importe_neto=neto,
        importe_iva=iva,
        importe_iva_deducible=iva * pct_iva_deducible / CIEN,
        importe_irpf=irpf,
        importe_total=neto + iva - irpf,
        deducible_impuesto_sociedades=deducible if deducible_impuesto_sociedades else CERO,
        deducible_irpf=deducible if deducible_irpf else CERO,
    )


def resumir_registros_fiscales(
    registros: Iterable[RegistroFiscalGasto],
) -> ResumenGastosFiscal:
    """Totales de los desgloses fiscales de gasto.

    A diferencia del motor, aqui las banderas de deducibilidad si anulan el
    importe deducible cuando son False.
    """
    resumen = ResumenGastosFiscal()

    for registro in registros:
        neto = _o(registro.importe_neto, CERO)
        iva = _o(registro.importe_iva, CERO)
        pct_deducible = _o(registro.porcentaje_deducible, CIEN)
        pct_iva_deducible = _o(registro.porcentaje_iva_deducible, CIEN)
        deducible = neto * pct_deducible / CIEN

        resumen.num_gastos += 1
        resumen.total_neto += neto
        resumen.total_iva += iva
        resumen.total_iva_deducible += iva * pct_iva_deducible / CIEN
        resumen.total_irpf += _o(registro.importe_irpf, CERO)
        resumen.total_bruto += _o(registro.importe_total, CERO)
        if registro.deducible_impuesto_sociedades:
            resumen.deducible_impuesto_sociedades += deducible
        if registro.deducible_irpf:
            resumen.deducible_irpf += deducible

    return resumen


def _porcentaje(valor: Optional[Decimal], registro_id) -> Decimal:
    """Porcentaje con defecto 100, acotado a [0, 100]."""
    if valor is None:
        return CIEN
    if valor < CERO or valor > CIEN:
        acotado = min(max(valor, CERO), CIEN)
        logger.warning(
            "Porcentaje deducible fuera de rango ({}) en gasto {}; se usa {}",
            valor, registro_id, acotado,
        )
        return acotado
    return valor


def _o(valor: Optional[Decimal], defecto: Decimal) -> Decimal:
    return defecto if valor is None else valor


def _clave(transaccion_id) -> Optional[str]:
    if transaccion_id is None:
        return None
    return str(transaccion_id).strip()
