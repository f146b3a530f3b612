"""Example: Analyze and audit a store's sales table

This example demonstrates how to run the full analysis on a list of rows as a
spreadsheet parser would hand them over, and how to read the audit report.

Prerequisites:
- Install the package: pip install -e .
- Replace ``rows`` with your own parsed sales table (any header names the
  field resolver recognizes, e.g. Data / Produto / Categoria / Valor)
"""

import logging

from retail_core import EngineConfig, run_analysis
from retail_core.qa import format_report_for_console

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

rows = [
    {"Data": "2024-03-04", "Produto": "Café", "Categoria": "Bebidas", "Vendedor": "Ana", "Qtde": 2, "Valor": "R$ 500,00"},
    {"Data": "05/03/2024", "Produto": "Arroz", "Categoria": "Mercearia", "Vendedor": "Bia", "Qtde": 3, "Valor": "300,00"},
    {"Data": "2024-03-08", "Produto": "Sabão", "Categoria": "Limpeza", "Vendedor": "Ana", "Qtde": 1, "Valor": 200.0},
    {"Data": "2024-02-05", "Produto": "Café", "Categoria": "Bebidas", "Vendedor": "Bia", "Qtde": 1, "Valor": 100.0},
    {"Data": "2024-03-08", "Produto": "Sabão", "Categoria": "Limpeza", "Vendedor": "Ana", "Qtde": 1, "Valor": -20.0},
]

config = EngineConfig(period_filter="month", top_n=3)
result = run_analysis(rows, config=config)

print(f"Resolved fields: {result.field_map.resolved}")
print(f"Available analyses: {result.analyses}")

aggregates = result.aggregates
print(f"\nTotal revenue: {aggregates.total_revenue:,.2f}")
print(f"Average ticket: {aggregates.average_ticket:,.2f} over {aggregates.transaction_count} sales")

print("\nTop categories:")
for bucket in aggregates.rankings["top_categories"].buckets:
    print(f"  {bucket.dimension_value}: {bucket.value:,.2f} ({bucket.percentage:.2f}%)")

print("\nABC curve (categories):")
for item in aggregates.category_abc.items:
    print(f"  {item.abc_class}  {item.dimension_value}: {item.accumulated_percentage:.2f}% accumulated")

revenue = aggregates.comparisons.get("revenue")
if revenue is not None:
    print(f"\nRevenue vs previous period: {revenue.delta_percent:+.1f}% ({revenue.kind.value})")

if aggregates.weekday is not None:
    print(f"Best weekday: {aggregates.weekday.best_day}, worst: {aggregates.weekday.worst_day}")

print()
print(format_report_for_console(result.report, title="Store Audit"))
