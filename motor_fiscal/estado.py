"""Registro del ultimo calculo del dashboard por usuario.

Se persiste en un JSON con la forma:
    {"<usuario_id>": {"lastEventType": "...", "updatedAt": "ISO-8601"}}

Se usa como gancho de ServicioResumenFiscal: tras cada calculo se marca el
evento 'dashboard-stats-calculated' con la hora actual.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from config.settings import EVENTO_CALCULO


class RegistroEstadoDashboard:
    """Estado de actualizacion del dashboard en un archivo JSON."""

    def __init__(self, ruta: Path):
        self.ruta = Path(ruta)

    def __call__(self, usuario_id: Any, resultado=None):
        """Permite registrar la instancia directamente como gancho."""
        self.marcar(usuario_id)

    def cargar(self) -> Dict[str, Dict[str, str]]:
        if self.ruta.exists():
            with open(self.ruta, 'r', encoding='utf-8') as f:
                return json.load(f)
        return {}

    def guardar(self, estado: Dict[str, Dict[str, str]]):
        self.ruta.parent.mkdir(parents=True, exist_ok=True)
        with open(self.ruta, 'w', encoding='utf-8') as f:
            json.dump(estado, f, indent=2, ensure_ascii=False)

    def marcar(
        self,
        usuario_id: Any,
        evento: str = EVENTO_CALCULO,
        ahora: Optional[datetime] = None,
    ) -> Dict[str, str]:
        """Registra el evento para el usuario y devuelve la entrada escrita."""
        ahora = ahora or datetime.now(timezone.utc)
        entrada = {
            'lastEventType': evento,
            'updatedAt': ahora.isoformat(),
        }
        estado = self.cargar()
        estado[str(usuario_id)] = entrada
        self.guardar(estado)
        logger.debug("Estado dashboard usuario {}: {}", usuario_id, evento)
        return entrada

    def obtener(self, usuario_id: Any) -> Optional[Dict[str, str]]:
        """Ultima entrada del usuario, o None si nunca se calculo."""
        return self.cargar().get(str(usuario_id))
