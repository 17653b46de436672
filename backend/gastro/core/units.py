"""Gastro unit dictionary and 3-level unit conversion.

Level 1: purchase unit (box, bale, kg) - what ``current_stock`` counts.
Level 2: consumption sub-unit (1 box = 10 cheeses) - ``units_per_package``.
Level 3: optional recipe unit (1 cheese = 20 slices) - ``recipe_units_per_consumption``.

One purchase unit therefore holds units_per_package x recipe_units_per_consumption
recipe units.
"""

from typing import Dict, List, Tuple

GASTRO_UNIT_GROUPS: List[Tuple[str, List[Tuple[str, str]]]] = [
    ("Weight", [
        ("kg", "Kilogram (kg)"),
        ("g", "Gram (g)"),
        ("mg", "Milligram (mg)"),
    ]),
    ("Volume", [
        ("L", "Litre (L)"),
        ("ml", "Millilitre (ml)"),
        ("gotas", "Drops"),
    ]),
    ("Culinary", [
        ("colher_cha", "Teaspoon (~5ml)"),
        ("colher_sopa", "Tablespoon (~15ml)"),
        ("xicara", "Cup (~240ml)"),
        ("copo", "Glass (~200ml)"),
        ("dose", "Shot (~50ml)"),
    ]),
    ("Operational", [
        ("un", "Unit (un)"),
        ("fatia", "Slice"),
        ("pedaco", "Piece"),
        ("ramo", "Sprig (herbs)"),
        ("pitada", "Pinch"),
    ]),
    ("Packaging", [
        ("cx", "Box (cx)"),
        ("pct", "Pack (pct)"),
        ("fardo", "Bale"),
        ("dz", "Dozen (dz)"),
        ("lata", "Can"),
        ("garrafa", "Bottle"),
        ("saco", "Bag"),
    ]),
]

ALL_UNITS: Dict[str, str] = {
    value: label for _, units in GASTRO_UNIT_GROUPS for value, label in units
}


def unit_label(value: str) -> str:
    """Display label for a unit, or the value itself when unknown."""
    return ALL_UNITS.get(value, value)


def is_known_unit(value: str) -> bool:
    return value in ALL_UNITS


def unit_groups() -> List[dict]:
    return [
        {"label": label, "units": [{"value": v, "label": l} for v, l in units]}
        for label, units in GASTRO_UNIT_GROUPS
    ]


def calculate_stock_deduction(recipe_qty, units_per_package, recipe_units_per_consumption=None):
    """Purchase units to deduct for ``recipe_qty``.

    With a third level (``recipe_units_per_consumption`` > 0) ``recipe_qty`` is
    in recipe units, otherwise in consumption units. A falsy
    ``units_per_package`` counts as 1. The result is not rounded.

    Example: 2 slices, 1 box = 10 cheeses, 1 cheese = 20 slices
    -> 2 / (10 * 20) = 0.01 boxes.
    """
    effective_units_per_package = units_per_package or 1

    if recipe_units_per_consumption and recipe_units_per_consumption > 0:
        return recipe_qty / (effective_units_per_package * recipe_units_per_consumption)

    return recipe_qty / effective_units_per_package
