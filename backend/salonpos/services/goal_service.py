"""
Monthly goals and the read-side metrics computed from commission records.

Metric helpers are pure and take the already-loaded records; divisions by
zero fall back to zero.
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from salonpos.core.config import settings
from salonpos.core.database import commit_or_rollback
from salonpos.core.errors import NotFoundError, ValidationError
from salonpos.core.money import CENT, ZERO, to_money
from salonpos.models.commission import CommissionTransaction, CommissionType
from salonpos.models.goal import Goal, GoalType
from salonpos.models.product import Product
from salonpos.models.professional import Professional

logger = logging.getLogger(__name__)

REVENUE_TYPES = (CommissionType.SERVICE, CommissionType.PRODUCT_SALE)
GOAL_TYPES = (GoalType.SHOP_REVENUE, GoalType.PROFESSIONAL_REVENUE, GoalType.PROFESSIONAL_SECONDARY_UNITS)


@dataclass(frozen=True)
class PeriodClock:
    days_in_period: int
    days_elapsed: int
    days_remaining: int


def month_clock(today: date) -> PeriodClock:
    """Today counts as elapsed."""
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    return PeriodClock(
        days_in_period=days_in_month,
        days_elapsed=today.day,
        days_remaining=days_in_month - today.day,
    )


def month_bounds(year: int, month: int) -> tuple:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _ratio(numerator: Decimal, denominator: Any) -> Decimal:
    if not denominator:
        return ZERO
    return (Decimal(numerator) / Decimal(denominator)).quantize(CENT, rounding=ROUND_HALF_UP)


def attendance_key(record: CommissionTransaction) -> str:
    """Records of the same checkout share the appointment; loose ones stand alone."""
    if record.appointment_id is not None:
        return f"appointment:{record.appointment_id}"
    return f"transaction:{record.id}"


def revenue(records: Iterable[CommissionTransaction]) -> Decimal:
    return to_money(sum((to_money(r.price) for r in records if r.type in REVENUE_TYPES), ZERO))


def net_profit(records: Iterable[CommissionTransaction], product_costs: Dict[int, Decimal]) -> Decimal:
    """price - commission - cost; cost is zero for services."""
    total = ZERO
    for record in records:
        if record.type not in REVENUE_TYPES:
            continue
        cost = ZERO
        if record.type == CommissionType.PRODUCT_SALE and record.catalog_id is not None:
            cost = to_money(product_costs.get(record.catalog_id, ZERO))
        total += to_money(record.price) - to_money(record.commission_amount_snapshot) - cost
    return to_money(total)


def attendances(records: Iterable[CommissionTransaction]) -> int:
    return len({attendance_key(r) for r in records if r.type in REVENUE_TYPES})


def ticket_average(records: Sequence[CommissionTransaction]) -> Decimal:
    return _ratio(revenue(records), attendances(records))


def product_attach_rate(records: Sequence[CommissionTransaction]) -> Decimal:
    """Share of attendances (0..1) that sold at least one product."""
    all_keys = {attendance_key(r) for r in records if r.type in REVENUE_TYPES}
    with_products = {attendance_key(r) for r in records if r.type == CommissionType.PRODUCT_SALE}
    return _ratio(Decimal(len(with_products)), len(all_keys))


def service_units(records: Iterable[CommissionTransaction], primary_categories: Sequence[str]) -> Dict[str, int]:
    """Service lines split into primary (e.g. haircut, beard) and secondary units."""
    primary = {c.lower() for c in primary_categories}
    total = secondary = 0
    for record in records:
        if record.type != CommissionType.SERVICE:
            continue
        total += 1
        if (record.category or "").lower() not in primary:
            secondary += 1
    return {"total": total, "secondary": secondary}


def daily_target_remaining(target: Any, accumulated: Any, clock: PeriodClock) -> Decimal:
    if clock.days_remaining <= 0:
        return ZERO
    missing = max(ZERO, to_money(target) - to_money(accumulated))
    return _ratio(missing, clock.days_remaining)


def projection(accumulated: Any, clock: PeriodClock) -> Decimal:
    if clock.days_elapsed <= 0:
        return ZERO
    return to_money(to_money(accumulated) / clock.days_elapsed * clock.days_in_period)


def set_goal(
    db: Session,
    tenant_id: int,
    goal_type: str,
    target_value: Any,
    professional_id: Optional[int] = None,
) -> Goal:
    """Create or replace the goal for (type, professional)."""
    if goal_type not in GOAL_TYPES:
        raise ValidationError(f"Invalid goal type: {goal_type}")
    target = to_money(target_value)
    if target < ZERO:
        raise ValidationError("Goal target cannot be negative")
    if goal_type == GoalType.SHOP_REVENUE:
        professional_id = None
    elif professional_id is None:
        raise ValidationError("Professional goals need a professional")
    else:
        exists = (
            db.query(Professional.id)
            .filter(Professional.id == professional_id, Professional.tenant_id == tenant_id)
            .first()
        )
        if not exists:
            raise NotFoundError("Professional not found")

    query = db.query(Goal).filter(Goal.tenant_id == tenant_id, Goal.type == goal_type)
    if professional_id is None:
        query = query.filter(Goal.professional_id.is_(None))
    else:
        query = query.filter(Goal.professional_id == professional_id)
    goal = query.first()

    if goal is None:
        goal = Goal(tenant_id=tenant_id, type=goal_type, professional_id=professional_id, period="monthly")
        db.add(goal)
    goal.target_value = target
    commit_or_rollback(db, "Set goal")
    db.refresh(goal)
    logger.info("Goal set: tenant=%s type=%s professional=%s target=%s", tenant_id, goal_type, professional_id, target)
    return goal


def list_goals(db: Session, tenant_id: int) -> List[Goal]:
    return db.query(Goal).filter(Goal.tenant_id == tenant_id).order_by(Goal.type, Goal.professional_id).all()


def _target(goals: Iterable[Goal], goal_type: str, professional_id: Optional[int] = None) -> Optional[Decimal]:
    for goal in goals:
        if goal.type == goal_type and goal.professional_id == professional_id:
            return to_money(goal.target_value)
    return None


def progress_report(db: Session, tenant_id: int, today: date) -> Dict[str, Any]:
    """Month-to-date metrics and goal progress for the month containing `today`."""
    first_day, last_day = month_bounds(today.year, today.month)
    clock = month_clock(today)
    records = (
        db.query(CommissionTransaction)
        .filter(
            CommissionTransaction.tenant_id == tenant_id,
            CommissionTransaction.date >= datetime.combine(first_day, time.min),
            CommissionTransaction.date <= datetime.combine(last_day, time.max),
        )
        .all()
    )
    product_ids = {r.catalog_id for r in records if r.type == CommissionType.PRODUCT_SALE and r.catalog_id}
    product_costs = {
        p.id: p.cost
        for p in db.query(Product).filter(Product.tenant_id == tenant_id, Product.id.in_(product_ids))
    } if product_ids else {}
    goals = list_goals(db, tenant_id)

    shop_revenue = revenue(records)
    shop_target = _target(goals, GoalType.SHOP_REVENUE)
    shop = {
        "revenue": shop_revenue,
        "net_profit": net_profit(records, product_costs),
        "attendances": attendances(records),
        "ticket_average": ticket_average(records),
        "product_attach_rate": product_attach_rate(records),
        "projection": projection(shop_revenue, clock),
        "target": shop_target,
        "daily_target_remaining": daily_target_remaining(shop_target, shop_revenue, clock) if shop_target is not None else ZERO,
    }

    professionals = (
        db.query(Professional).filter(Professional.tenant_id == tenant_id).order_by(Professional.name).all()
    )
    per_professional = []
    for professional in professionals:
        own = [r for r in records if r.professional_id == professional.id]
        own_revenue = revenue(own)
        units = service_units(own, settings.primary_categories)
        revenue_target = _target(goals, GoalType.PROFESSIONAL_REVENUE, professional.id)
        per_professional.append(
            {
                "professional_id": professional.id,
                "name": professional.name,
                "revenue": own_revenue,
                "attendances": attendances(own),
                "ticket_average": ticket_average(own),
                "product_attach_rate": product_attach_rate(own),
                "service_units": units["total"],
                "secondary_units": units["secondary"],
                "projection": projection(own_revenue, clock),
                "revenue_target": revenue_target,
                "daily_target_remaining": (
                    daily_target_remaining(revenue_target, own_revenue, clock) if revenue_target is not None else ZERO
                ),
                "secondary_units_target": _target(goals, GoalType.PROFESSIONAL_SECONDARY_UNITS, professional.id),
            }
        )

    return {
        "period_start": first_day,
        "period_end": last_day,
        "days_in_period": clock.days_in_period,
        "days_elapsed": clock.days_elapsed,
        "days_remaining": clock.days_remaining,
        "shop": shop,
        "professionals": per_professional,
    }
