"""Fuente de registros a partir de un libro Excel.

Estructura esperada:
  - Hoja 'Facturas':      id | issueDate | dueDate | subtotal | total |
                          status | additionalTaxes (JSON) [| usuario_id]
  - Hoja 'Transacciones': id | date | amount | type [| usuario_id]
  - Hoja 'Gastos':        transactionId | netAmount | vatAmount | vatRate |
                          vatDeductiblePercent | irpfAmount | irpfRate |
                          totalAmount | deductiblePercent |
                          deductibleForCorporateTax | deductibleForIrpf
                          [| usuario_id]

Fila 1 = encabezados; los datos empiezan en la fila 2. Las filas totalmente
vacias se ignoran. Si existe la columna usuario_id, solo se entregan las
filas del usuario pedido.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import openpyxl
from loguru import logger

from motor_fiscal.entrada.registros import (
    factura_desde_dict,
    ingerir,
    registro_fiscal_desde_dict,
    transaccion_desde_dict,
)
from motor_fiscal.models import Advertencia, Factura, RegistroFiscalGasto, Transaccion


HOJA_FACTURAS = 'Facturas'
HOJA_TRANSACCIONES = 'Transacciones'
HOJA_GASTOS = 'Gastos'

COL_USUARIO = 'usuario_id'


class LibroRegistros:
    """Implementa FuenteRegistros leyendo un libro .xlsx."""

    def __init__(self, ruta: Path):
        self.ruta = Path(ruta)
        self.advertencias: List[Advertencia] = []
        self._filas: Optional[Dict[str, List[Dict[str, Any]]]] = None

    def obtener_facturas(self, usuario_id: Any = None) -> List[Factura]:
        filas = self._filas_usuario(HOJA_FACTURAS, usuario_id)
        return ingerir(filas, factura_desde_dict, 'factura', self.advertencias)

    def obtener_transacciones(self, usuario_id: Any = None) -> List[Transaccion]:
        filas = self._filas_usuario(HOJA_TRANSACCIONES, usuario_id)
        return ingerir(filas, transaccion_desde_dict, 'transaccion', self.advertencias)

    def obtener_registros_fiscales(self, usuario_id: Any = None) -> List[RegistroFiscalGasto]:
        filas = self._filas_usuario(HOJA_GASTOS, usuario_id)
        return ingerir(filas, registro_fiscal_desde_dict, 'gasto', self.advertencias)

    # --- Lectura ---

    def _filas_usuario(self, hoja: str, usuario_id: Any) -> List[Dict[str, Any]]:
        """Filas de una hoja, filtradas por usuario si hay columna usuario_id."""
        filas = self._cargar().get(hoja, [])
        if usuario_id is None:
            return filas
        return [
            fila for fila in filas
            if COL_USUARIO not in fila or _mismo_usuario(fila[COL_USUARIO], usuario_id)
        ]

    def _cargar(self) -> Dict[str, List[Dict[str, Any]]]:
        """Lee el libro una sola vez y guarda las filas por hoja."""
        if self._filas is not None:
            return self._filas

        logger.info("Leyendo libro de registros: {}", self.ruta.name)
        wb = openpyxl.load_workbook(str(self.ruta), data_only=True, read_only=True)

        self._filas = {}
        for hoja in (HOJA_FACTURAS, HOJA_TRANSACCIONES, HOJA_GASTOS):
            if hoja not in wb.sheetnames:
                logger.warning("Hoja '{}' no encontrada en {}", hoja, self.ruta.name)
                self._filas[hoja] = []
                continue
            self._filas[hoja] = _leer_hoja(wb[hoja])
            logger.info("Hoja '{}': {} filas", hoja, len(self._filas[hoja]))

        wb.close()
        return self._filas


def _leer_hoja(ws) -> List[Dict[str, Any]]:
    """Convierte una hoja con encabezados en una lista de dicts."""
    filas_iter = ws.iter_rows(values_only=True)
    encabezados = next(filas_iter, None)
    if not encabezados:
        return []

    claves = [str(h).strip() if h is not None else None for h in encabezados]

    filas = []
    for valores in filas_iter:
        if all(v is None or (isinstance(v, str) and not v.strip()) for v in valores):
            continue
        fila = {
            clave: valor
            for clave, valor in zip(claves, valores)
            if clave
        }
        filas.append(fila)
    return filas


def _mismo_usuario(valor, usuario_id) -> bool:
    """Compara ids de usuario como texto (Excel puede entregar 7.0 por 7)."""
    if valor is None:
        return False
    if isinstance(valor, float) and valor.is_integer():
        valor = int(valor)
    return str(valor).strip() == str(usuario_id).strip()
