# cake_stock/cli/commands.py
import asyncio
import json
import click

from cake_stock.core.config import get_settings
from cake_stock.database import async_session, create_tables as create_all_tables
from cake_stock.services.cache import TTLCache
from cake_stock.services.catalog_importer import CatalogImporter
from cake_stock.services.sales_aggregator import SalesAggregator
from cake_stock.services.stock_reconciler import StockReconciler


def _cache() -> TTLCache:
    # Each CLI run gets its own cache; the server's cache expires on its own TTL
    return TTLCache(ttl_seconds=get_settings().CACHE_TTL_SECONDS)


@click.group()
def cli():
    """Cake Stock maintenance commands"""


@cli.command("create-tables")
def create_tables():
    """Create all database tables directly using SQLAlchemy"""
    asyncio.run(create_all_tables())
    click.echo("All tables created successfully!")


@cli.command()
def reconcile():
    """Create stock-level rows for catalog products missing one"""
    async def _reconcile():
        async with async_session() as db:
            return await StockReconciler(db, _cache()).reconcile()

    result = asyncio.run(_reconcile())
    click.echo(f"{result.message} ({result.total_products} products in catalog)")


@cli.command("weekly-report")
def weekly_report():
    """Generate and store the weekly sales report"""
    async def _generate():
        async with async_session() as db:
            return await SalesAggregator(db, _cache()).generate_weekly_report()

    report = asyncio.run(_generate())
    click.echo(f"Period: {report.period.start:%Y-%m-%d %H:%M} to {report.period.end:%Y-%m-%d %H:%M}")
    for line in report.lines:
        click.echo(
            f"  {line.product_id:<12} boutique={line.sale_boutique} marche={line.sale_marche} "
            f"saleya={line.sale_saleya} b2b={line.delivery_b2b} total={line.total}"
        )
    click.echo(f"Total sales: {report.total_sales} across {report.products_reported} products")


@cli.command("import-catalog")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
def import_catalog(csv_path):
    """Import catalog products from a CSV file"""
    async def _import():
        async with async_session() as db:
            return await CatalogImporter(db, _cache()).import_csv(csv_path)

    result = asyncio.run(_import())
    click.echo(json.dumps(result, indent=2))


if __name__ == "__main__":
    cli()
