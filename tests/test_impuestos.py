"""Tests para la extraccion de IRPF de facturas."""

from datetime import date
from decimal import Decimal

import pytest

from motor_fiscal.impuestos import (
    ErrorRegistro,
    estimar_irpf,
    extraer_irpf,
    tiene_irpf_retenido,
)
from motor_fiscal.models import EstadoFactura, Factura, LineaImpuesto, TipoImpuesto


def _factura(subtotal='1000', lineas=(), error=None) -> Factura:
    return Factura(
        id='F-1',
        fecha_emision=date(2025, 2, 1),
        fecha_vencimiento=None,
        subtotal=Decimal(subtotal),
        total=Decimal(subtotal) * Decimal('1.21'),
        estado=EstadoFactura.PAID,
        impuestos_adicionales=tuple(lineas),
        error_impuestos=error,
    )


def _irpf(tasa) -> LineaImpuesto:
    return LineaImpuesto('IRPF', Decimal(tasa), TipoImpuesto.IRPF)


class TestExtraerIrpf:

    def test_retencion_negativa(self):
        irpf, avisos = extraer_irpf(_factura(lineas=[_irpf('-15')]))
        assert irpf == Decimal('150')
        assert avisos == []

    def test_varias_lineas_se_suman(self):
        irpf, _ = extraer_irpf(_factura(lineas=[_irpf('-15'), _irpf('-7')]))
        assert irpf == Decimal('220')

    def test_tasa_positiva_no_cuenta_y_avisa(self):
        irpf, avisos = extraer_irpf(_factura(lineas=[_irpf('15')]))
        assert irpf == Decimal('0')
        assert len(avisos) == 1
        assert 'negativa' in avisos[0]

    def test_tasa_cero_no_cuenta(self):
        irpf, avisos = extraer_irpf(_factura(lineas=[_irpf('0')]))
        assert irpf == Decimal('0')
        assert len(avisos) == 1

    def test_lineas_no_irpf_se_ignoran(self):
        lineas = [
            LineaImpuesto('IVA 21%', Decimal('21'), TipoImpuesto.IVA),
            LineaImpuesto('Recargo', Decimal('-5'), TipoImpuesto.OTRO),
        ]
        irpf, avisos = extraer_irpf(_factura(lineas=lineas))
        assert irpf == Decimal('0')
        assert avisos == []

    def test_sin_lineas(self):
        assert extraer_irpf(_factura()) == (Decimal('0'), [])

    def test_error_de_ingesta_lanza_error_registro(self):
        with pytest.raises(ErrorRegistro) as exc:
            extraer_irpf(_factura(error='additionalTaxes no es JSON valido'))
        assert exc.value.registro_id == 'F-1'


class TestEstimarIrpf:

    def test_quince_por_ciento(self):
        assert estimar_irpf(_factura('2000'), Decimal('15')) == Decimal('300')


class TestTieneIrpfRetenido:

    def test_con_retencion(self):
        assert tiene_irpf_retenido(_factura(lineas=[_irpf('-15')]))

    def test_tasa_positiva_no_es_retencion(self):
        assert not tiene_irpf_retenido(_factura(lineas=[_irpf('15')]))
