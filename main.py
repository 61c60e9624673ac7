"""Motor fiscal - Resumen de IVA / IRPF para autonomos.

Punto de entrada CLI para calcular el resumen fiscal de un periodo a partir
de un libro Excel de registros (facturas, transacciones y desgloses de gasto).

Uso:
    python main.py resumen data/registros.xlsx
    python main.py resumen data/registros.xlsx --year 2025 --period Q1
    python main.py resumen data/registros.xlsx --year 2025 --month 3 --json
    python main.py resumen data/registros.xlsx --usuario 7 --modo-correccion revision
    python main.py gastos data/registros.xlsx --year 2025
    python main.py anios data/registros.xlsx
"""

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from loguru import logger


def configurar_logger(nivel: str = 'INFO'):
    """Configura loguru con formato legible."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=nivel,
        format="<green>{time:HH:mm:ss}</green> | "
               "<level>{level: <8}</level> | "
               "<cyan>{name}</cyan>:<cyan>{function}</cyan> | "
               "<level>{message}</level>",
    )


def _abrir_libro(archivo: str):
    """Valida la ruta y devuelve la fuente de registros."""
    from motor_fiscal.entrada.libro_registros import LibroRegistros

    ruta = Path(archivo)
    if not ruta.exists():
        logger.error("Archivo no encontrado: {}", ruta)
        sys.exit(1)
    return LibroRegistros(ruta)


def cmd_resumen(args, settings):
    """Calcula y muestra el resumen fiscal del periodo."""
    from motor_fiscal.estado import RegistroEstadoDashboard
    from motor_fiscal.motor import ServicioResumenFiscal

    libro = _abrir_libro(args.archivo)

    parametros = settings.parametros
    if args.modo_correccion:
        parametros = replace(parametros, modo_correccion=args.modo_correccion)

    servicio = ServicioResumenFiscal(libro, parametros)
    if not args.sin_estado:
        servicio.agregar_gancho(RegistroEstadoDashboard(settings.estado_path))

    resultado = servicio.calcular(
        args.usuario, year=args.year, period=args.period, month=args.month,
    )
    resumen = resultado.resumen

    if args.json:
        print(json.dumps(resumen.a_dict(), indent=2, ensure_ascii=False))
        return

    periodo = f"{args.year or 'todos'} / {args.period}"
    if args.month:
        periodo += f" / mes {args.month}"

    print(f"\n{'='*60}")
    print(f"RESUMEN FISCAL: {libro.ruta.name} ({periodo})")
    print(f"{'='*60}")

    print(f"\n  Ingresos")
    print(f"    Base imponible:        {resumen.base_imponible:>12,} EUR")
    print(f"    IVA repercutido:       {resumen.iva_repercutido:>12,} EUR")
    print(f"    IRPF retenido:         {resumen.irpf_retenido_ingresos:>12,} EUR")

    print(f"\n  Gastos ({resultado.totales.gastos_procesados} procesados, "
          f"{resultado.totales.gastos_estimados} estimados)")
    print(f"    Base imponible:        {resumen.base_imponible_gastos:>12,} EUR")
    print(f"    IVA soportado:         {resumen.iva_soportado:>12,} EUR")
    print(f"    IRPF gastos:           {resumen.irpf_gastos:>12,} EUR")
    print(f"    Gastos deducibles:     {resumen.gastos_deducibles:>12,} EUR")
    print(f"    IVA deducible:         {resumen.iva_deducible:>12,} EUR")

    print(f"\n  Liquidacion")
    print(f"    IVA a liquidar:        {resumen.iva_a_liquidar:>12,} EUR")
    print(f"    IVA a ingresar:        {resumen.iva_a_ingresar:>12,} EUR")
    print(f"    IRPF total:            {resumen.irpf_total:>12,} EUR")
    print(f"    Resultado fiscal:      {resumen.resultado_fiscal:>12,} EUR")
    print(f"  {'─'*40}")
    print(f"    RESULTADO NETO:        {resumen.net_result:>12,} EUR")

    print(f"\n  Facturas del periodo: {resumen.facturas_total}")
    print(f"    Pagadas:   {resumen.facturas_pagadas}")
    print(f"    Pendientes: {resumen.facturas_pendientes} "
          f"({resumen.pending_invoices:,} EUR)")
    print(f"    Vencidas:  {resumen.facturas_vencidas}")

    correccion = resultado.correccion
    if correccion.corregido:
        print(f"\n  IRPF corregido: {correccion.valor_original:,.2f} -> "
              f"{correccion.irpf_retenido_ingresos:,.2f} EUR")
    elif correccion.requiere_revision:
        print(f"\n  REVISAR: {resultado.validacion.mensaje}")

    advertencias = resultado.advertencias + libro.advertencias
    if advertencias:
        print(f"\n  ADVERTENCIAS ({len(advertencias)}):")
        for a in advertencias[:15]:
            print(f"    [{a.origen} {a.registro_id or '-'}] {a.mensaje}")
        if len(advertencias) > 15:
            print(f"    ... y {len(advertencias) - 15} mas")


def cmd_gastos(args, settings):
    """Muestra los totales de los desgloses fiscales de gasto."""
    from motor_fiscal.gastos import resumir_registros_fiscales
    from motor_fiscal.periodo import filtrar_por_periodo

    libro = _abrir_libro(args.archivo)
    registros = libro.obtener_registros_fiscales(args.usuario)

    if args.year:
        transacciones = filtrar_por_periodo(
            libro.obtener_transacciones(args.usuario), args.year, args.period,
            month=args.month,
        )
        ids = {str(t.id).strip() for t in transacciones if t.id is not None}
        registros = [
            r for r in registros
            if r.transaccion_id is not None and str(r.transaccion_id).strip() in ids
        ]

    resumen = resumir_registros_fiscales(registros)

    print(f"\n{'='*60}")
    print(f"GASTOS CON DESGLOSE FISCAL: {libro.ruta.name}")
    print(f"{'='*60}")
    print(f"  Gastos:                      {resumen.num_gastos}")
    print(f"  Total neto:                  {resumen.total_neto:>12,.2f} EUR")
    print(f"  Total IVA:                   {resumen.total_iva:>12,.2f} EUR")
    print(f"  IVA deducible:               {resumen.total_iva_deducible:>12,.2f} EUR")
    print(f"  Total IRPF:                  {resumen.total_irpf:>12,.2f} EUR")
    print(f"  {'─'*40}")
    print(f"  TOTAL BRUTO:                 {resumen.total_bruto:>12,.2f} EUR")
    print(f"\n  Deducible Imp. Sociedades:   {resumen.deducible_impuesto_sociedades:>12,.2f} EUR")
    print(f"  Deducible IRPF:              {resumen.deducible_irpf:>12,.2f} EUR")


def cmd_anios(args, settings):
    """Lista los anios con registros en el libro."""
    from motor_fiscal.periodo import anios_disponibles

    libro = _abrir_libro(args.archivo)
    anios = anios_disponibles(
        libro.obtener_facturas(args.usuario),
        libro.obtener_transacciones(args.usuario),
    )

    if not anios:
        print("Sin registros con fecha.")
        return
    for anio in anios:
        print(anio)


def _agregar_filtros(sub):
    """Argumentos comunes de seleccion de periodo y usuario."""
    sub.add_argument('archivo', help='Ruta al libro Excel de registros')
    sub.add_argument('--year', default=None, help='Anio (ej: 2025). Sin anio = todo')
    sub.add_argument(
        '--period',
        default='all',
        help="Periodo: 'all' o Q1..Q4 (default: all)",
    )
    sub.add_argument('--month', type=int, default=None, help='Mes 1..12 (opcional)')
    sub.add_argument('--usuario', default=None, help='Filtrar por usuario_id')


def main():
    """Punto de entrada principal."""
    from config.settings import MODO_SOLO_REVISION, MODO_SUSTITUIR, Settings

    parser = argparse.ArgumentParser(
        description='Motor fiscal - Resumen de IVA / IRPF',
    )
    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Nivel de logging (default: LOG_LEVEL o INFO)',
    )
    parser.add_argument(
        '--env',
        default=None,
        help='Ruta a un archivo .env alternativo',
    )

    subparsers = parser.add_subparsers(dest='comando', help='Comando a ejecutar')

    # Subcomando: resumen
    parser_resumen = subparsers.add_parser('resumen', help='Calcular resumen fiscal')
    _agregar_filtros(parser_resumen)
    parser_resumen.add_argument(
        '--json',
        action='store_true',
        help='Imprimir el resumen como JSON',
    )
    parser_resumen.add_argument(
        '--modo-correccion',
        default=None,
        choices=[MODO_SUSTITUIR, MODO_SOLO_REVISION],
        help='Politica ante IRPF anomalo (default: MODO_CORRECCION o sustituir)',
    )
    parser_resumen.add_argument(
        '--sin-estado',
        action='store_true',
        help='No registrar el calculo en el estado del dashboard',
    )

    # Subcomando: gastos
    parser_gastos = subparsers.add_parser(
        'gastos', help='Totales de los desgloses fiscales de gasto',
    )
    _agregar_filtros(parser_gastos)

    # Subcomando: anios
    parser_anios = subparsers.add_parser('anios', help='Anios con registros')
    parser_anios.add_argument('archivo', help='Ruta al libro Excel de registros')
    parser_anios.add_argument('--usuario', default=None, help='Filtrar por usuario_id')

    args = parser.parse_args()
    settings = Settings.from_env(args.env)
    configurar_logger(args.log_level or settings.log_level)

    if args.comando is None:
        parser.print_help()
        sys.exit(0)

    if args.comando == 'resumen':
        cmd_resumen(args, settings)
    elif args.comando == 'gastos':
        cmd_gastos(args, settings)
    elif args.comando == 'anios':
        cmd_anios(args, settings)
    else:
        parser.print_help()


if __name__ == '__main__':
    main()
