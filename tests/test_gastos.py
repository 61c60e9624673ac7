"""Tests para la resolucion fiscal de gastos."""

from datetime import date
from decimal import Decimal

import pytest

from config.settings import ParametrosFiscales
from motor_fiscal.gastos import (
    calcular_deducibles,
    calcular_impuestos_gasto,
    indexar_registros_fiscales,
    resolver_gasto,
    resumir_registros_fiscales,
)
from motor_fiscal.impuestos import ErrorRegistro
from motor_fiscal.models import RegistroFiscalGasto, TipoTransaccion, Transaccion


def _gasto(id='T-1', importe='121') -> Transaccion:
    return Transaccion(
        id=id,
        fecha=date(2025, 2, 1),
        importe=Decimal(importe) if importe is not None else None,
        tipo=TipoTransaccion.EXPENSE,
    )


class TestIndexarRegistros:

    def test_claves_como_texto(self):
        indice = indexar_registros_fiscales([RegistroFiscalGasto(transaccion_id=5)])
        assert '5' in indice

    def test_duplicado_conserva_el_primero(self):
        primero = RegistroFiscalGasto(transaccion_id='T-1', importe_neto=Decimal('1'))
        segundo = RegistroFiscalGasto(transaccion_id='T-1', importe_neto=Decimal('2'))
        advertencias = []
        indice = indexar_registros_fiscales([primero, segundo], advertencias)
        assert indice['T-1'] is primero
        assert len(advertencias) == 1

    def test_sin_transaccion_se_ignora(self):
        assert indexar_registros_fiscales([RegistroFiscalGasto(transaccion_id=None)]) == {}


class TestResolverGasto:

    def test_estimacion_sin_registro(self):
        desglose = resolver_gasto(_gasto(importe='121'), {})
        assert desglose.estimado
        assert desglose.importe_neto == Decimal('100')
        assert desglose.importe_iva == Decimal('21')
        assert desglose.importe_irpf == Decimal('0')
        assert desglose.importe_total == Decimal('121')
        assert desglose.porcentaje_deducible == Decimal('100')
        assert desglose.porcentaje_iva_deducible == Decimal('100')

    def test_estimacion_conserva_el_bruto(self):
        desglose = resolver_gasto(_gasto(importe='100'), {})
        assert desglose.importe_neto + desglose.importe_iva == Decimal('100')

    def test_estimacion_con_otro_tipo_general(self):
        parametros = ParametrosFiscales(tasa_iva_general=Decimal('10'))
        desglose = resolver_gasto(_gasto(importe='110'), {}, parametros)
        assert desglose.importe_neto == Decimal('100')

    def test_registro_tiene_prioridad(self):
        registro = RegistroFiscalGasto(
            transaccion_id='T-1',
            importe_neto=Decimal('80'),
            importe_iva=Decimal('16.80'),
            importe_irpf=Decimal('12'),
            importe_total=Decimal('84.80'),
            porcentaje_iva_deducible=Decimal('50'),
            porcentaje_deducible=Decimal('30'),
        )
        desglose = resolver_gasto(_gasto(importe='999'), {'T-1': registro})
        assert not desglose.estimado
        assert desglose.importe_neto == Decimal('80')
        assert desglose.importe_iva == Decimal('16.80')
        assert desglose.importe_irpf == Decimal('12')
        assert desglose.porcentaje_deducible == Decimal('30')

    def test_registro_con_id_numerico(self):
        registro = RegistroFiscalGasto(transaccion_id=7, importe_neto=Decimal('10'))
        indice = indexar_registros_fiscales([registro])
        desglose = resolver_gasto(_gasto(id='7'), indice)
        assert desglose.importe_neto == Decimal('10')

    def test_vacios_toman_defectos(self):
        registro = RegistroFiscalGasto(transaccion_id='T-1')
        desglose = resolver_gasto(_gasto(), {'T-1': registro})
        assert desglose.importe_neto == Decimal('0')
        assert desglose.importe_iva == Decimal('0')
        assert desglose.porcentaje_deducible == Decimal('100')
        assert desglose.porcentaje_iva_deducible == Decimal('100')

    @pytest.mark.parametrize('valor,esperado', [('150', '100'), ('-20', '0')])
    def test_porcentaje_fuera_de_rango_se_acota(self, valor, esperado):
        registro = RegistroFiscalGasto(transaccion_id='T-1', porcentaje_deducible=Decimal(valor))
        desglose = resolver_gasto(_gasto(), {'T-1': registro})
        assert desglose.porcentaje_deducible == Decimal(esperado)

    def test_sin_importe_ni_registro_es_error(self):
        with pytest.raises(ErrorRegistro):
            resolver_gasto(_gasto(importe=None), {})

    def test_sin_importe_con_registro_se_resuelve(self):
        registro = RegistroFiscalGasto(transaccion_id='T-1', importe_neto=Decimal('50'))
        desglose = resolver_gasto(_gasto(importe=None), {'T-1': registro})
        assert desglose.importe_neto == Decimal('50')

    def test_transaccion_sin_id_no_busca_registro(self):
        registro = RegistroFiscalGasto(transaccion_id='None', importe_neto=Decimal('1'))
        desglose = resolver_gasto(_gasto(id=None), {'None': registro})
        assert desglose.estimado
        assert desglose.importe_neto == Decimal('100')


class TestCalcularDeducibles:

    def test_porcentajes(self):
        registro = RegistroFiscalGasto(
            transaccion_id='T-1',
            importe_neto=Decimal('200'),
            importe_iva=Decimal('42'),
            porcentaje_deducible=Decimal('50'),
            porcentaje_iva_deducible=Decimal('50'),
        )
        desglose = resolver_gasto(_gasto(), {'T-1': registro})
        assert calcular_deducibles(desglose) == (Decimal('100'), Decimal('21'))

    def test_estimado_deducible_completo(self):
        desglose = resolver_gasto(_gasto(importe='121'), {})
        assert calcular_deducibles(desglose) == (Decimal('100'), Decimal('21'))


class TestCalcularImpuestosGasto:

    def test_iva_e_irpf(self):
        impuestos = calcular_impuestos_gasto(
            Decimal('1000'), tasa_iva=Decimal('21'), tasa_irpf=Decimal('15'),
        )
        assert impuestos.importe_iva == Decimal('210')
        assert impuestos.importe_irpf == Decimal('150')
        assert impuestos.importe_total == Decimal('1060')
        assert impuestos.importe_iva_deducible == Decimal('210')

    def test_banderas_anulan_deducible(self):
        impuestos = calcular_impuestos_gasto(
            '1000',
            tasa_iva='21',
            porcentaje_deducible=Decimal('50'),
            deducible_impuesto_sociedades=True,
            deducible_irpf=False,
        )
        assert impuestos.deducible_impuesto_sociedades == Decimal('500')
        assert impuestos.deducible_irpf == Decimal('0')

    def test_neto_no_numerico_es_cero(self):
        impuestos = calcular_impuestos_gasto('abc', tasa_iva=21)
        assert impuestos.importe_total == Decimal('0')


class TestResumirRegistrosFiscales:

    def test_totales(self, filas_gastos):
        from motor_fiscal.entrada.registros import registro_fiscal_desde_dict

        registros = [registro_fiscal_desde_dict(f) for f in filas_gastos]
        registros.append(RegistroFiscalGasto(
            transaccion_id='T-9',
            importe_neto=Decimal('200'),
            importe_iva=Decimal('42'),
            importe_total=Decimal('242'),
            porcentaje_deducible=Decimal('50'),
        ))

        resumen = resumir_registros_fiscales(registros)
        assert resumen.num_gastos == 2
        assert resumen.total_neto == Decimal('300')
        assert resumen.total_iva == Decimal('63')
        # T-3 deduce el 50% del IVA; T-9 el 100%
        assert resumen.total_iva_deducible == Decimal('52.5')
        assert resumen.total_bruto == Decimal('363')
        assert resumen.deducible_impuesto_sociedades == Decimal('200')
        # T-3 no es deducible en IRPF
        assert resumen.deducible_irpf == Decimal('100')

    def test_vacio(self):
        resumen = resumir_registros_fiscales([])
        assert resumen.num_gastos == 0
        assert resumen.total_neto == Decimal('0')
