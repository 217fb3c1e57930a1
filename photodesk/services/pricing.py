"""Подсчёт итогов по выбору клиента. Одна функция и для отображения, и для суммы к оплате."""
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from photodesk.models import ClientSelection

CENT = Decimal("0.01")


@dataclass(frozen=True)
class Totals:
    package_count: int
    additional_count: int
    total_cost: Decimal


def compute_totals(selections: Iterable[ClientSelection], price_per_additional: Decimal) -> Totals:
    package_count = 0
    additional_count = 0
    for s in selections:
        if s.selected_for_package:
            package_count += 1
        elif s.is_additional_purchase:
            additional_count += 1
    total = (Decimal(additional_count) * Decimal(price_per_additional)).quantize(CENT, rounding=ROUND_HALF_UP)
    return Totals(package_count=package_count, additional_count=additional_count, total_cost=total)


def to_minor_units(amount: Decimal) -> int:
    """Сумма в грошах (копейках) для шлюза."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
