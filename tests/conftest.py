"""Fixtures compartidas para tests del motor fiscal."""

import json
import sys
from datetime import date
from pathlib import Path

import pytest

# Agregar raiz del proyecto al path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))


# Fecha de referencia fija para contadores de facturas vencidas
HOY = date(2025, 6, 30)


@pytest.fixture
def hoy() -> date:
    return HOY


@pytest.fixture
def filas_facturas():
    """Filas crudas de facturas tal como llegan del almacenamiento."""
    return [
        {
            'id': 'F-1', 'issueDate': '2025-02-10', 'dueDate': '2025-03-10',
            'subtotal': 1000, 'total': 1210, 'status': 'paid',
            'additionalTaxes': [
                {'name': 'IVA 21%', 'rate': 21},
                {'name': 'IRPF', 'rate': -15},
            ],
        },
        {
            'id': 'F-2', 'issueDate': '2025-05-02', 'dueDate': '2025-06-01',
            'subtotal': 400, 'total': 484, 'status': 'pending',
            'additionalTaxes': [],
        },
        {
            'id': 'F-3', 'issueDate': '2024-11-20', 'dueDate': '2024-12-20',
            'subtotal': 2000, 'total': 2420, 'status': 'paid',
            'additionalTaxes': json.dumps([{'name': 'IRPF', 'rate': -15}]),
        },
    ]


@pytest.fixture
def filas_transacciones():
    return [
        {'id': 'T-1', 'date': '2025-02-15', 'amount': 605, 'type': 'expense'},
        {'id': 'T-2', 'date': '2025-02-20', 'amount': 1210, 'type': 'income'},
        {'id': 'T-3', 'date': '2024-12-01', 'amount': 121, 'type': 'expense'},
    ]


@pytest.fixture
def filas_gastos():
    return [
        {
            'transactionId': 'T-3', 'netAmount': 100, 'vatAmount': 21,
            'vatRate': 21, 'vatDeductiblePercent': 50, 'irpfAmount': 0,
            'irpfRate': 0, 'totalAmount': 121, 'deductiblePercent': 100,
            'deductibleForCorporateTax': True, 'deductibleForIrpf': False,
        },
    ]


@pytest.fixture
def crear_libro(tmp_path):
    """Fabrica de libros .xlsx con las hojas Facturas/Transacciones/Gastos."""
    from openpyxl import Workbook

    def _crear(hojas, nombre='registros.xlsx') -> Path:
        wb = Workbook()
        wb.remove(wb.active)
        for titulo, filas in hojas.items():
            ws = wb.create_sheet(titulo)
            if not filas:
                continue
            encabezados = list(filas[0].keys())
            ws.append(encabezados)
            for fila in filas:
                ws.append([_celda(fila.get(h)) for h in encabezados])
        ruta = tmp_path / nombre
        wb.save(ruta)
        return ruta

    return _crear


def _celda(valor):
    """Los arreglos de impuestos se guardan en la celda como JSON."""
    if isinstance(valor, (list, dict)):
        return json.dumps(valor)
    return valor
