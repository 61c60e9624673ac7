"""Configuracion central del motor fiscal.

Constantes fiscales (tipos de estimacion y umbrales del validador de IRPF)
y parametros de ejecucion. Todo se puede sobreescribir desde variables de
entorno (.env).
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from motor_fiscal.entrada.normalizacion import decimal_opcional


# Tipo general de IVA asumido cuando no hay desglose fiscal del gasto
TASA_IVA_GENERAL = Decimal('21')

# Retencion IRPF estimada (factura con error o correccion por anomalia)
TASA_IRPF_ESTIMADA = Decimal('15')

# Validador IRPF: por debajo de este total se considera sospechoso
UMBRAL_IRPF_SOSPECHOSO = Decimal('10')

# Correccion IRPF: solo se sustituye si la base imponible supera este valor
UMBRAL_BASE_CORRECCION = Decimal('1000')

# Importe maximo admitido por registro; por encima se excluye con advertencia
IMPORTE_MAXIMO = Decimal('1e15')

# Modos de correccion soportados (ver motor_fiscal.validacion.POLITICAS_CORRECCION)
MODO_SUSTITUIR = 'sustituir'
MODO_SOLO_REVISION = 'revision'

# Evento registrado tras cada calculo
EVENTO_CALCULO = 'dashboard-stats-calculated'


@dataclass(frozen=True)
class ParametrosFiscales:
    """Constantes de politica fiscal usadas por el motor.

    Se agrupan para que un cambio de politica (p. ej. otro tipo de IVA
    general) no toque la logica de agregacion.
    """
    tasa_iva_general: Decimal = TASA_IVA_GENERAL
    tasa_irpf_estimada: Decimal = TASA_IRPF_ESTIMADA
    umbral_irpf_sospechoso: Decimal = UMBRAL_IRPF_SOSPECHOSO
    umbral_base_correccion: Decimal = UMBRAL_BASE_CORRECCION
    modo_correccion: str = MODO_SUSTITUIR
    importe_maximo: Decimal = IMPORTE_MAXIMO

    @property
    def factor_iva(self) -> Decimal:
        """Divisor para extraer la base de un importe con IVA (1.21)."""
        return Decimal('1') + self.tasa_iva_general / Decimal('100')


@dataclass
class Settings:
    """Configuracion principal del motor fiscal."""

    # --- Politica fiscal ---
    tasa_iva_general: Decimal = TASA_IVA_GENERAL
    tasa_irpf_estimada: Decimal = TASA_IRPF_ESTIMADA
    umbral_irpf_sospechoso: Decimal = UMBRAL_IRPF_SOSPECHOSO
    umbral_base_correccion: Decimal = UMBRAL_BASE_CORRECCION
    modo_correccion: str = MODO_SUSTITUIR
    importe_maximo: Decimal = IMPORTE_MAXIMO

    # --- Directorios ---
    proyecto_dir: Path = field(default_factory=lambda: Path(__file__).parent.parent)
    datos_dir: Path = field(default=None)
    estado_path: Path = field(default=None)

    # --- Logging ---
    log_level: str = 'INFO'

    def __post_init__(self):
        """Inicializa rutas derivadas si no fueron proporcionadas."""
        if self.datos_dir is None:
            self.datos_dir = self.proyecto_dir / 'data'
        if self.estado_path is None:
            self.estado_path = self.datos_dir / 'estado_dashboard.json'

    @property
    def parametros(self) -> ParametrosFiscales:
        """Parametros fiscales listos para pasar al motor."""
        return ParametrosFiscales(
            tasa_iva_general=self.tasa_iva_general,
            tasa_irpf_estimada=self.tasa_irpf_estimada,
            umbral_irpf_sospechoso=self.umbral_irpf_sospechoso,
            umbral_base_correccion=self.umbral_base_correccion,
            modo_correccion=self.modo_correccion,
            importe_maximo=self.importe_maximo,
        )

    @classmethod
    def from_env(cls, env_path: str = None) -> 'Settings':
        """Carga configuracion desde variables de entorno (.env)."""
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        datos_dir = os.getenv('DATOS_DIR')
        estado_path = os.getenv('ESTADO_PATH')

        return cls(
            tasa_iva_general=_decimal_env('TASA_IVA_GENERAL', TASA_IVA_GENERAL),
            tasa_irpf_estimada=_decimal_env('TASA_IRPF_ESTIMADA', TASA_IRPF_ESTIMADA),
            umbral_irpf_sospechoso=_decimal_env('UMBRAL_IRPF_SOSPECHOSO', UMBRAL_IRPF_SOSPECHOSO),
            umbral_base_correccion=_decimal_env('UMBRAL_BASE_CORRECCION', UMBRAL_BASE_CORRECCION),
            importe_maximo=_decimal_env('IMPORTE_MAXIMO', IMPORTE_MAXIMO),
            modo_correccion=os.getenv('MODO_CORRECCION', MODO_SUSTITUIR),
            datos_dir=Path(datos_dir) if datos_dir else None,
            estado_path=Path(estado_path) if estado_path else None,
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
        )


def _decimal_env(nombre: str, defecto: Decimal) -> Decimal:
    """Lee una variable numerica; un valor no interpretable usa el defecto."""
    crudo = os.getenv(nombre)
    if crudo is None or not crudo.strip():
        return defecto

    valor = decimal_opcional(crudo)
    if valor is None:
        logger.warning("{} no es numerico ({!r}); se usa {}", nombre, crudo, defecto)
        return defecto
    return valor
