"""Tests para redondeo, contadores de facturas y construccion del resumen."""

from datetime import date
from decimal import Decimal

import pytest

from motor_fiscal.models import ConteoFacturas, EstadoFactura, Factura, Totales
from motor_fiscal.resumen import construir_resumen, contar_facturas, redondear


def _factura(id, estado, total='100', vencimiento=None) -> Factura:
    return Factura(
        id=id,
        fecha_emision=date(2025, 1, 1),
        fecha_vencimiento=vencimiento,
        subtotal=Decimal(total),
        total=Decimal(total),
        estado=estado,
    )


class TestRedondear:

    @pytest.mark.parametrize('valor,esperado', [
        ('99.5', 100),
        ('99.49', 99),
        ('0.5', 1),
        ('-2.5', -2),
        ('-2.51', -3),
        ('349.999999', 350),
        ('0', 0),
    ])
    def test_mitades_hacia_arriba(self, valor, esperado):
        assert redondear(Decimal(valor)) == esperado

    def test_devuelve_int(self):
        assert isinstance(redondear(Decimal('1.2')), int)


class TestContarFacturas:

    def test_contadores(self, hoy):
        facturas = [
            _factura('F-1', EstadoFactura.PAID, '1210'),
            _factura('F-2', EstadoFactura.PENDING, '100', vencimiento=date(2025, 12, 1)),
            _factura('F-3', EstadoFactura.PENDING, '50', vencimiento=date(2025, 1, 1)),
            _factura('F-4', EstadoFactura.OVERDUE, '25'),
            _factura('F-5', EstadoFactura.DRAFT, '999'),
        ]
        conteo = contar_facturas(facturas, hoy)
        assert conteo.total == 5
        assert conteo.pagadas == 1
        assert conteo.pendientes == 3
        assert conteo.vencidas == 2
        assert conteo.importe_pendiente == Decimal('175')

    def test_vacio(self, hoy):
        assert contar_facturas([], hoy) == ConteoFacturas()

    def test_total_pendiente_fuera_de_rango_no_suma(self, hoy):
        facturas = [
            _factura('F-1', EstadoFactura.PENDING, '100'),
            _factura('F-2', EstadoFactura.PENDING, '9e999999'),
        ]
        conteo = contar_facturas(facturas, hoy)
        assert conteo.pendientes == 2
        assert conteo.importe_pendiente == Decimal('100')


class TestConstruirResumen:

    def _totales(self) -> Totales:
        return Totales(
            base_imponible=Decimal('1000'),
            ingresos_facturas=Decimal('1210'),
            iva_repercutido=Decimal('210'),
            irpf_retenido_ingresos=Decimal('150'),
            base_imponible_gastos=Decimal('500'),
            iva_soportado=Decimal('105'),
            irpf_gastos=Decimal('20'),
            total_gastos=Decimal('585'),
            gastos_deducibles=Decimal('400'),
            iva_deducible=Decimal('80'),
        )

    def test_derivadas(self):
        r = construir_resumen(self._totales(), Decimal('150'), ConteoFacturas())
        assert r.iva_a_liquidar == 105
        assert r.irpf_total == 170
        assert r.net_result == 1000 - 500 - 170
        assert r.resultado_fiscal == 600
        assert r.iva_a_ingresar == 130
        assert r.irpf_pagar == 20
        assert r.facturas_importe == 1210

    def test_irpf_corregido_se_propaga(self):
        r = construir_resumen(self._totales(), Decimal('300'), ConteoFacturas())
        assert r.irpf_retenido_ingresos == 300
        assert r.irpf_total == 320
        assert r.total_withholdings == 320
        assert r.net_result == 1000 - 500 - 320

    def test_a_dict_contrato(self):
        conteo = ConteoFacturas(total=3, pagadas=1, pendientes=2, vencidas=1,
                                importe_pendiente=Decimal('99.5'))
        d = construir_resumen(self._totales(), Decimal('150'), conteo).a_dict()

        assert d['income'] == d['netIncome'] == d['baseImponible'] == 1000
        assert d['expenses'] == d['netExpenses'] == d['baseImponibleGastos'] == 500
        assert d['totalWithholdings'] == d['taxes']['incomeTax'] == d['irpfGastos'] + 150
        assert d['taxes']['vat'] == d['taxes']['ivaALiquidar'] == 105
        assert d['pendingInvoices'] == 100
        assert d['pendingCount'] == 2
        assert d['invoices'] == {
            'total': 3, 'pending': 2, 'paid': 1, 'overdue': 1, 'totalAmount': 1210,
        }
        assert set(d['taxStats']) == {
            'ivaRepercutido', 'ivaSoportado', 'ivaLiquidar', 'irpfRetenido',
            'irpfTotal', 'irpfPagar', 'gastosDeducibles', 'ivaDeducible',
            'resultadoFiscal', 'ivaAIngresar',
        }
        assert d['taxStats']['ivaLiquidar'] == 105

    def test_redondeo_solo_al_final(self):
        # 0.4 + 0.4 redondeados por separado darian 0; juntos dan 1
        totales = Totales(base_imponible=Decimal('0.4') + Decimal('0.4'))
        r = construir_resumen(totales, Decimal('0'), ConteoFacturas())
        assert r.base_imponible == 1
