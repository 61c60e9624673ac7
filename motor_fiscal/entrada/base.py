"""Base para fuentes de registros del motor fiscal.

Define el protocolo que toda fuente (almacenamiento, libro Excel, etc.)
debe implementar para alimentar al motor.
"""

from typing import Any, List, Protocol

from motor_fiscal.models import Factura, RegistroFiscalGasto, Transaccion


class FuenteRegistros(Protocol):
    """Protocolo de las colecciones que consume el motor.

    Una fuente entrega colecciones ya leidas y convertidas a modelos.
    El motor NO lee de la fuente: lo hace ServicioResumenFiscal antes de
    invocarlo.
    """

    def obtener_facturas(self, usuario_id: Any) -> List[Factura]:
        """Facturas emitidas del usuario."""
        ...

    def obtener_transacciones(self, usuario_id: Any) -> List[Transaccion]:
        """Transacciones (ingresos y gastos) del usuario."""
        ...

    def obtener_registros_fiscales(self, usuario_id: Any) -> List[RegistroFiscalGasto]:
        """Desgloses fiscales de gasto del usuario."""
        ...
