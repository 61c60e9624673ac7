"""Motor de agregacion fiscal.

Coordina el flujo completo de un calculo:
  filtrar periodo -> extraer IRPF de facturas pagadas -> resolver gastos
  -> agregar -> validar/corregir IRPF -> construir resumen.

calcular_resumen_fiscal es una funcion pura: no hace I/O y siempre devuelve
un resultado. ServicioResumenFiscal obtiene las colecciones de una fuente y
ejecuta los ganchos posteriores (p. ej. registrar el ultimo calculo).
"""

from datetime import date
from typing import Any, Callable, Iterable, List, Optional

from loguru import logger

from config.settings import ParametrosFiscales
from motor_fiscal.agregador import agregar, procesar_facturas, procesar_gastos
from motor_fiscal.entrada.base import FuenteRegistros
from motor_fiscal.gastos import indexar_registros_fiscales
from motor_fiscal.models import (
    Advertencia,
    Factura,
    RegistroFiscalGasto,
    ResultadoCalculo,
    Transaccion,
)
from motor_fiscal.periodo import PERIODO_TODO, filtrar_por_periodo
from motor_fiscal.resumen import construir_resumen, contar_facturas
from motor_fiscal.validacion import obtener_politica, validar_irpf


GanchoCalculo = Callable[[Any, ResultadoCalculo], None]


def calcular_resumen_fiscal(
    facturas: Iterable[Factura],
    transacciones: Iterable[Transaccion],
    registros_fiscales: Iterable[RegistroFiscalGasto],
    year: Optional[str] = None,
    period: Optional[str] = PERIODO_TODO,
    month: Optional[int] = None,
    parametros: ParametrosFiscales = ParametrosFiscales(),
    hoy: Optional[date] = None,
) -> ResultadoCalculo:
    """Calcula el resumen fiscal del periodo.

    Args:
        facturas: Facturas emitidas (todas; se filtran aqui).
        transacciones: Transacciones del libro (ingresos y gastos).
        registros_fiscales: Desgloses fiscales de gasto.
        year: Anio como string ('2025'); None = todos.
        period: 'all' o 'Q1'..'Q4'.
        month: Mes 1..12 (opcional).
        parametros: Constantes de politica fiscal.
        hoy: Fecha de referencia para facturas vencidas (defecto: hoy).

    Returns:
        ResultadoCalculo con el resumen, los totales, la validacion de IRPF
        y las advertencias de calidad de datos.
    """
    hoy = hoy or date.today()
    advertencias: List[Advertencia] = []

    # 1. Filtrar periodo
    facturas_periodo = filtrar_por_periodo(facturas, year, period, 'fecha_emision', month)
    transacciones_periodo = filtrar_por_periodo(transacciones, year, period, 'fecha', month)
    pagadas = [f for f in facturas_periodo if f.pagada]
    gastos = [t for t in transacciones_periodo if t.es_gasto]

    logger.info(
        "Calculo fiscal year={} period={}: {} facturas ({} pagadas), {} gastos",
        year or 'todos', period or PERIODO_TODO,
        len(facturas_periodo), len(pagadas), len(gastos),
    )

    # 2. Procesar registros de forma aislada
    indice = indexar_registros_fiscales(registros_fiscales, advertencias)
    resultados_facturas = procesar_facturas(pagadas, parametros, advertencias)
    resultados_gastos = procesar_gastos(gastos, indice, parametros)

    # 3. Agregar
    totales = agregar(pagadas, resultados_facturas, resultados_gastos, parametros)
    advertencias.extend(totales.advertencias)

    # 4. Validar y, segun la politica, corregir el IRPF retenido
    validacion = validar_irpf(
        pagadas, totales.irpf_retenido_ingresos, parametros.umbral_irpf_sospechoso,
    )
    if not validacion.es_valido:
        logger.warning(validacion.mensaje)
        advertencias.append(Advertencia('validacion', None, validacion.mensaje))

    politica = obtener_politica(parametros.modo_correccion)
    correccion = politica(
        validacion, totales.irpf_retenido_ingresos, totales.base_imponible, parametros,
    )

    # 5. Resumen (unico punto de redondeo)
    resumen = construir_resumen(
        totales,
        correccion.irpf_retenido_ingresos,
        contar_facturas(facturas_periodo, hoy, parametros.importe_maximo),
    )

    return ResultadoCalculo(
        resumen=resumen,
        totales=totales,
        validacion=validacion,
        correccion=correccion,
        year=year,
        period=period or PERIODO_TODO,
        advertencias=advertencias,
    )


class ServicioResumenFiscal:
    """Obtiene colecciones de una fuente, calcula y ejecuta ganchos.

    Los ganchos se ejecutan despues del calculo; un gancho que falla se
    registra en el log y no altera el resultado devuelto.
    """

    def __init__(
        self,
        fuente: FuenteRegistros,
        parametros: ParametrosFiscales = ParametrosFiscales(),
        ganchos: Optional[List[GanchoCalculo]] = None,
    ):
        self.fuente = fuente
        self.parametros = parametros
        self.ganchos: List[GanchoCalculo] = list(ganchos or [])

    def agregar_gancho(self, gancho: GanchoCalculo):
        self.ganchos.append(gancho)

    def calcular(
        self,
        usuario_id: Any,
        year: Optional[str] = None,
        period: Optional[str] = PERIODO_TODO,
        month: Optional[int] = None,
        hoy: Optional[date] = None,
    ) -> ResultadoCalculo:
        """Calcula el resumen fiscal de un usuario."""
        facturas = self.fuente.obtener_facturas(usuario_id)
        transacciones = self.fuente.obtener_transacciones(usuario_id)
        registros = self.fuente.obtener_registros_fiscales(usuario_id)

        resultado = calcular_resumen_fiscal(
            facturas, transacciones, registros,
            year=year, period=period, month=month,
            parametros=self.parametros, hoy=hoy,
        )

        for gancho in self.ganchos:
            try:
                gancho(usuario_id, resultado)
            except Exception as e:
                logger.error(
                    "Error en gancho posterior al calculo ({}): {}",
                    getattr(gancho, '__name__', type(gancho).__name__), e,
                )

        return resultado
