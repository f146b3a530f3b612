"""Tests for the team analysis."""

import pandas as pd

from retail_core.sales.aggregate import top_n
from retail_core.sales.team import revenue_dispersion, seller_performance, top_seller


def team_frame() -> pd.DataFrame:
    """Ana: 3 sales, 700.00; Bia: 2 sales, 400.00; one row without seller."""
    return pd.DataFrame(
        {
            "seller": ["Ana", "Bia", "Ana", "Bia", "Ana", None],
            "value": [500.0, 300.0, 200.0, 100.0, 0.0, 50.0],
            "quantity": [2, 3, 1, 1, 1, 9],
        }
    )


class TestSellerPerformance:
    def test_figures_per_seller(self) -> None:
        """Totals, ticket and sale extremes in first-seen seller order."""
        perf = seller_performance(team_frame())

        assert list(perf) == ["Ana", "Bia"]
        ana = perf["Ana"]
        assert (ana.total_value, ana.sales_count, ana.average_ticket) == (700.0, 3, 233.33)
        assert (ana.max_sale, ana.min_sale) == (500.0, 0.0)
        assert ana.total_quantity is None

    def test_quantity_fields(self) -> None:
        """Units are added only when a quantity column is named."""
        perf = seller_performance(team_frame(), quantity_field="quantity")

        assert (perf["Bia"].total_quantity, perf["Bia"].average_quantity) == (4.0, 2.0)
        assert perf["Ana"].to_dict()["average_quantity"] == 1.33

    def test_no_sellers(self) -> None:
        """Empty input, or no seller column, gives no entries."""
        assert seller_performance([]) == {}
        assert seller_performance([{"value": 10.0}]) == {}


def test_top_seller() -> None:
    """The first entry of the revenue ranking, None without sellers."""
    best = top_seller(team_frame())

    assert (best.dimension_value, best.value) == ("Ana", 700.0)
    assert top_seller([{"value": 1.0}]) is None


def test_revenue_dispersion() -> None:
    """Sellers at 700.00 and 400.00 spread 150.00 around 550.00."""
    ranking = top_n(team_frame(), "seller", "value", n=10)

    assert revenue_dispersion(ranking) == {"average": 550.0, "std": 150.0, "coefficient_of_variation": 27.27}
    assert revenue_dispersion([]) == {"average": 0.0, "std": 0.0, "coefficient_of_variation": 0.0}
