"""Battery string formulas."""


def calc_actual_capacity(capacity_pct: float, rated_capacity: float) -> float:
    """Remaining amp-hours of a string given its capacity percentage."""
    return rated_capacity * capacity_pct / 100
