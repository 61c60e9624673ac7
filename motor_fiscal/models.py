"""Modelos de datos del motor fiscal.

Registros de entrada (facturas, transacciones, desgloses fiscales de gasto),
resultados intermedios por registro y el resumen fiscal de salida.
Todos los importes son Decimal; el redondeo a entero solo ocurre al
construir el ResumenFiscal.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# --- Enumeraciones ---

class EstadoFactura(str, Enum):
    """Estados de una factura emitida."""
    DRAFT = 'draft'
    SENT = 'sent'
    PAID = 'paid'
    PENDING = 'pending'
    OVERDUE = 'overdue'
    CANCELED = 'canceled'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


class TipoTransaccion(str, Enum):
    """Direccion de un apunte del libro de transacciones."""
    INCOME = 'income'
    EXPENSE = 'expense'


class TipoImpuesto(str, Enum):
    """Clase de una linea de impuesto adicional, resuelta en la ingesta."""
    IVA = 'IVA'
    IRPF = 'IRPF'
    OTRO = 'OTRO'


# --- Modelos de entrada ---

@dataclass(frozen=True)
class LineaImpuesto:
    """Impuesto adicional de una factura.

    Convencion de signo: una retencion (IRPF) se modela con tasa NEGATIVA
    (ej: -15). Una linea IRPF con tasa >= 0 es un error de captura.
    """
    nombre: str
    tasa: Decimal               # Porcentaje con signo
    tipo: TipoImpuesto

    @property
    def es_retencion(self) -> bool:
        """True si es IRPF con tasa negativa."""
        return self.tipo == TipoImpuesto.IRPF and self.tasa < 0


@dataclass(frozen=True)
class Factura:
    """Factura emitida (snapshot inmutable del subsistema de facturacion)."""
    id: Any
    fecha_emision: Optional[date]
    fecha_vencimiento: Optional[date]
    subtotal: Decimal           # Base imponible
    total: Decimal
    estado: Optional[EstadoFactura]
    impuestos_adicionales: Tuple[LineaImpuesto, ...] = ()
    # Motivo si el arreglo de impuestos no se pudo interpretar en la ingesta
    error_impuestos: Optional[str] = None

    @property
    def pagada(self) -> bool:
        return self.estado == EstadoFactura.PAID

    @property
    def pendiente(self) -> bool:
        """Dinero esperado pero no cobrado."""
        return self.estado in (EstadoFactura.PENDING, EstadoFactura.OVERDUE)


@dataclass(frozen=True)
class Transaccion:
    """Apunte generico del libro (ingreso o gasto)."""
    id: Any
    fecha: Optional[date]
    importe: Optional[Decimal]  # Bruto; None si el campo no venia
    tipo: Optional[TipoTransaccion]

    @property
    def es_gasto(self) -> bool:
        return self.tipo == TipoTransaccion.EXPENSE


@dataclass(frozen=True)
class RegistroFiscalGasto:
    """Desglose fiscal detallado de un gasto (0..1 por transaccion).

    Los campos numericos pueden venir vacios (None); el resolvedor aplica
    los valores por defecto documentados.
    """
    transaccion_id: Any
    importe_neto: Optional[Decimal] = None
    importe_iva: Optional[Decimal] = None
    tasa_iva: Optional[Decimal] = None
    porcentaje_iva_deducible: Optional[Decimal] = None
    importe_irpf: Optional[Decimal] = None
    tasa_irpf: Optional[Decimal] = None
    importe_total: Optional[Decimal] = None
    porcentaje_deducible: Optional[Decimal] = None
    deducible_impuesto_sociedades: bool = True
    deducible_irpf: bool = True


# --- Resultados intermedios ---

@dataclass(frozen=True)
class DesgloseGasto:
    """Desglose resuelto de un gasto, real o estimado."""
    transaccion_id: Any
    importe_neto: Decimal
    importe_iva: Decimal
    importe_irpf: Decimal
    importe_total: Decimal
    porcentaje_iva_deducible: Decimal
    porcentaje_deducible: Decimal
    estimado: bool = False


@dataclass(frozen=True)
class GastoResuelto:
    """Desglose de un gasto con sus importes deducibles ya calculados."""
    desglose: DesgloseGasto
    gasto_deducible: Decimal
    iva_deducible: Decimal


@dataclass(frozen=True)
class Advertencia:
    """Aviso de calidad de datos sobre un registro concreto."""
    origen: str                 # 'factura', 'transaccion', 'registro_fiscal', 'validacion'
    registro_id: Any
    mensaje: str


@dataclass(frozen=True)
class ResultadoRegistro:
    """Resultado del procesamiento de un registro: valor o error.

    El agregador pliega sobre estos resultados: los exitos se suman y los
    errores se convierten en advertencias.
    """
    registro_id: Any
    valor: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Totales:
    """Sumas a precision completa sobre el periodo filtrado."""
    base_imponible: Decimal = Decimal('0')
    ingresos_facturas: Decimal = Decimal('0')
    iva_repercutido: Decimal = Decimal('0')
    irpf_retenido_ingresos: Decimal = Decimal('0')

    base_imponible_gastos: Decimal = Decimal('0')
    iva_soportado: Decimal = Decimal('0')
    irpf_gastos: Decimal = Decimal('0')
    total_gastos: Decimal = Decimal('0')
    gastos_deducibles: Decimal = Decimal('0')
    iva_deducible: Decimal = Decimal('0')

    gastos_procesados: int = 0
    gastos_estimados: int = 0
    advertencias: List[Advertencia] = field(default_factory=list)


@dataclass(frozen=True)
class ValidacionIrpf:
    """Diagnostico del validador de IRPF."""
    es_valido: bool
    mensaje: str
    facturas_con_irpf: int = 0


@dataclass(frozen=True)
class CorreccionIrpf:
    """Resultado de aplicar una politica de correccion de IRPF."""
    irpf_retenido_ingresos: Decimal
    corregido: bool = False
    requiere_revision: bool = False
    valor_original: Optional[Decimal] = None


@dataclass(frozen=True)
class ConteoFacturas:
    """Contadores y sumas de facturas del periodo (no fiscales)."""
    total: int = 0
    pagadas: int = 0
    pendientes: int = 0
    vencidas: int = 0
    importe_pendiente: Decimal = Decimal('0')


# --- Salida ---

@dataclass(frozen=True)
class ResumenFiscal:
    """Resumen fiscal del periodo. Todos los campos son enteros redondeados."""
    income: int
    expenses: int
    pending_invoices: int
    pending_count: int
    base_imponible: int
    base_imponible_gastos: int
    iva_repercutido: int
    iva_soportado: int
    irpf_retenido_ingresos: int
    irpf_gastos: int
    total_withholdings: int
    net_income: int
    net_expenses: int
    net_result: int
    gastos_deducibles: int
    iva_deducible: int
    resultado_fiscal: int
    iva_a_ingresar: int
    iva_a_liquidar: int
    irpf_total: int
    irpf_pagar: int
    facturas_total: int
    facturas_pendientes: int
    facturas_pagadas: int
    facturas_vencidas: int
    facturas_importe: int

    def a_dict(self) -> Dict[str, Any]:
        """Serializa con los nombres de campo del contrato de salida."""
        return {
            'income': self.income,
            'expenses': self.expenses,
            'pendingInvoices': self.pending_invoices,
            'pendingCount': self.pending_count,
            'baseImponible': self.base_imponible,
            'baseImponibleGastos': self.base_imponible_gastos,
            'ivaRepercutido': self.iva_repercutido,
            'ivaSoportado': self.iva_soportado,
            'irpfRetenidoIngresos': self.irpf_retenido_ingresos,
            'irpfGastos': self.irpf_gastos,
            'totalWithholdings': self.total_withholdings,
            'netIncome': self.net_income,
            'netExpenses': self.net_expenses,
            'netResult': self.net_result,
            'gastosDeducibles': self.gastos_deducibles,
            'ivaDeducible': self.iva_deducible,
            'resultadoFiscal': self.resultado_fiscal,
            'ivaAIngresar': self.iva_a_ingresar,
            'taxes': {
                'vat': self.iva_a_liquidar,
                'incomeTax': self.irpf_total,
                'ivaALiquidar': self.iva_a_liquidar,
            },
            'taxStats': {
                'ivaRepercutido': self.iva_repercutido,
                'ivaSoportado': self.iva_soportado,
                'ivaLiquidar': self.iva_a_liquidar,
                'irpfRetenido': self.irpf_retenido_ingresos,
                'irpfTotal': self.irpf_total,
                'irpfPagar': self.irpf_pagar,
                'gastosDeducibles': self.gastos_deducibles,
                'ivaDeducible': self.iva_deducible,
                'resultadoFiscal': self.resultado_fiscal,
                'ivaAIngresar': self.iva_a_ingresar,
            },
            'invoices': {
                'total': self.facturas_total,
                'pending': self.facturas_pendientes,
                'paid': self.facturas_pagadas,
                'overdue': self.facturas_vencidas,
                'totalAmount': self.facturas_importe,
            },
        }


@dataclass
class ResultadoCalculo:
    """Salida completa de una invocacion del motor."""
    resumen: ResumenFiscal
    totales: Totales
    validacion: ValidacionIrpf
    correccion: CorreccionIrpf
    year: Optional[str] = None
    period: str = 'all'
    advertencias: List[Advertencia] = field(default_factory=list)


@dataclass
class ResumenGastosFiscal:
    """Resumen de desgloses fiscales de gasto (con banderas de deducibilidad)."""
    num_gastos: int = 0
    total_neto: Decimal = Decimal('0')
    total_iva: Decimal = Decimal('0')
    total_iva_deducible: Decimal = Decimal('0')
    total_irpf: Decimal = Decimal('0')
    total_bruto: Decimal = Decimal('0')
    deducible_impuesto_sociedades: Decimal = Decimal('0')
    deducible_irpf: Decimal = Decimal('0')


@dataclass(frozen=True)
class ImpuestosGasto:
    """Impuestos derivados de un neto y sus tipos."""
    importe_neto: Decimal
    importe_iva: Decimal
    importe_iva_deducible: Decimal
    importe_irpf: Decimal
    importe_total: Decimal
    deducible_impuesto_sociedades: Decimal
    deducible_irpf: Decimal
