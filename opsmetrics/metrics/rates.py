"""
VAT rate and markup resolution

Precedence per business, for one (year, month):

    vat    = goal.vat_rate ?? business.vat_rate ?? default_vat_rate
    markup = goal.markup   ?? business.markup   ?? default_markup

A business markup of 0 is treated as unset. A multi-business selection uses
the unweighted mean across the selected businesses.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from opsmetrics.metrics.records import Business, Goal
from opsmetrics.utils.helpers import mean, to_float


@dataclass(frozen=True)
class ResolvedRates:
    vat_rate: float
    markup: float

    @property
    def vat_divisor(self) -> float:
        return 1 + self.vat_rate if self.vat_rate > 0 else 1.0


def resolve_business_rates(
    business: Business,
    goal: Optional[Goal],
    default_vat_rate: float = 0.0,
    default_markup: float = 1.0,
) -> ResolvedRates:
    """Resolve VAT and markup for a single business"""
    if goal is not None and goal.vat_rate is not None:
        vat = to_float(goal.vat_rate)
    elif business.vat_rate is not None:
        vat = to_float(business.vat_rate)
    else:
        vat = default_vat_rate

    if goal is not None and goal.markup is not None:
        markup = to_float(goal.markup)
    else:
        markup = to_float(business.markup) or default_markup

    return ResolvedRates(vat_rate=vat, markup=markup)


def resolve_rates(
    businesses: Iterable[Business],
    goals: Iterable[Goal],
    default_vat_rate: float = 0.0,
    default_markup: float = 1.0,
) -> ResolvedRates:
    """Mean VAT rate and markup across a business selection"""
    goal_by_business: Dict[str, Goal] = {g.business_id: g for g in goals}
    resolved = [
        resolve_business_rates(b, goal_by_business.get(b.id), default_vat_rate, default_markup)
        for b in businesses
    ]
    if not resolved:
        return ResolvedRates(vat_rate=default_vat_rate, markup=default_markup)
    return ResolvedRates(
        vat_rate=mean(r.vat_rate for r in resolved),
        markup=mean(r.markup for r in resolved),
    )
