from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

ZERO = Decimal("0")


@dataclass(frozen=True)
class CostBreakdown:
    total_product_amount: Decimal
    total_other_expenses: Decimal
    actual_all_in: Decimal
    variance: Decimal
    profit_approx: Decimal


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() keeps ints and already-rounded values exact
    return Decimal(str(value))


def total_product_amount(products: Iterable[Any]) -> Decimal:
    """Sum of stored line totals; quantity x price is not recomputed here."""
    return sum((to_money(item.total) for item in products), ZERO)


def total_other_expenses(expenses: Iterable[Any]) -> Decimal:
    return sum((to_money(item.amount) for item in expenses), ZERO)


def actual_all_in(product_amount: Decimal, other_expenses: Decimal) -> Decimal:
    return product_amount + other_expenses


def variance(budget, all_in: Decimal) -> Decimal:
    """Negative when over budget."""
    return to_money(budget) - all_in


def profit_approx(product_amount: Decimal, other_expenses: Decimal) -> Decimal:
    return product_amount - other_expenses


def compute_cost_summary(project: Any, products: Iterable[Any], expenses: Iterable[Any]) -> CostBreakdown:
    product_amount = total_product_amount(products)
    other_expenses = total_other_expenses(expenses)
    all_in = actual_all_in(product_amount, other_expenses)
    return CostBreakdown(
        total_product_amount=product_amount,
        total_other_expenses=other_expenses,
        actual_all_in=all_in,
        variance=variance(project.budget, all_in),
        profit_approx=profit_approx(product_amount, other_expenses),
    )
