"""Budget reconciliation - recompute totals from the activities themselves.

Sums are kept in integer cents so the total, the category subtotals and the
estimate agree exactly at currency precision.
"""

import math

from backend.enrichment.errors import DraftValidationError
from backend.enrichment.models.common import KIND_TO_CATEGORY, BudgetCategory
from backend.enrichment.models.itinerary import BudgetBreakdown, Itinerary

DEFAULT_CURRENCY = "CNY"
CENTS_PER_UNIT = 100


def to_cents(amount: float) -> int:
    """Amount in whole cents.

    Raises:
        OverflowError: the amount is too large to scale
    """
    return round(amount * CENTS_PER_UNIT)


def from_cents(cents: int) -> float:
    """Whole cents back to a currency amount.

    Raises:
        OverflowError: the sum no longer fits in a float
    """
    return cents / CENTS_PER_UNIT


def summarize_costs(itinerary: Itinerary) -> tuple[int, dict[BudgetCategory, int]]:
    """Total and per-category sums of usable cost estimates, in cents.

    Missing, negative and non-finite estimates are skipped.
    """
    total = 0
    by_category = {category: 0 for category in BudgetCategory}

    for activity in itinerary.iter_activities():
        cost = activity.cost_estimate
        if cost is None or not math.isfinite(cost) or cost < 0:
            continue
        cents = to_cents(cost)
        total += cents
        by_category[KIND_TO_CATEGORY.get(activity.kind, BudgetCategory.other)] += cents

    return total, by_category


def reconcile_budget(itinerary: Itinerary, default_currency: str = DEFAULT_CURRENCY) -> Itinerary:
    """Overwrite the draft's budget figures with computed sums.

    Currency and notes from the draft breakdown are kept; a missing currency
    falls back to ``default_currency``. The input itinerary is not modified.

    Raises:
        DraftValidationError: the activity costs cannot be totalled as finite amounts
    """
    try:
        total_cents, by_category = summarize_costs(itinerary)
        total = from_cents(total_cents)
        subtotals = {category: from_cents(cents) for category, cents in by_category.items()}
    except OverflowError as e:
        raise DraftValidationError(
            "Activity costs are too large to total",
            errors=[
                {
                    "type": "finite_number",
                    "loc": ("budget_breakdown", "total"),
                    "msg": "Sum of activity costs is not a finite number",
                }
            ],
        ) from e

    draft = itinerary.budget_breakdown

    breakdown = BudgetBreakdown(
        total=total,
        currency=(draft.currency if draft and draft.currency else default_currency),
        accommodation=subtotals[BudgetCategory.accommodation],
        transport=subtotals[BudgetCategory.transport],
        food=subtotals[BudgetCategory.food],
        activities=subtotals[BudgetCategory.activities],
        other=subtotals[BudgetCategory.other],
        notes=draft.notes if draft else None,
    )

    return itinerary.model_copy(update={"budget_estimate": total, "budget_breakdown": breakdown})


def budget_violations(itinerary: Itinerary) -> list[str]:
    """Check a reconciled itinerary's budget figures against its activities.

    The breakdown total must equal the present subtotals, the activity costs
    and the budget estimate, compared in cents. Returns one message per
    violated rule; empty when consistent.
    """
    breakdown = itinerary.budget_breakdown
    if breakdown is None:
        return ["budget_breakdown is missing"]

    violations: list[str] = []
    try:
        total = to_cents(breakdown.total)
        subtotals = [
            to_cents(value)
            for value in (
                breakdown.accommodation,
                breakdown.transport,
                breakdown.food,
                breakdown.activities,
                breakdown.other,
            )
            if value is not None
        ]
        costs, _ = summarize_costs(itinerary)
        estimate = None if itinerary.budget_estimate is None else to_cents(itinerary.budget_estimate)
    except OverflowError:
        return ["budget figures are too large to compare"]

    if subtotals and sum(subtotals) != total:
        violations.append(
            f"budget_breakdown.total ({total} cents) != sum of subtotals ({sum(subtotals)} cents)"
        )
    if costs != total:
        violations.append(
            f"budget_breakdown.total ({total} cents) != sum of activity costs ({costs} cents)"
        )
    if estimate != total:
        violations.append(f"budget_estimate {itinerary.budget_estimate} != budget_breakdown.total")

    return violations
