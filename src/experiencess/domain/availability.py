"""Availability configuration: options first, then pricing, then validity.

An availability can be attached to a booking only once its option list is
complete and its pricing is valid. Options are applied in a single pass;
when answering them reveals further options the returned detail reports
``is_complete=False`` and the caller answers again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from experiencess.domain.models import AvailabilityDetail, AvailabilityList, PricingCategory
from experiencess.errors import ConfigurationInvalid

if TYPE_CHECKING:
    from experiencess.holibob.client import HolibobClient

logger = logging.getLogger(__name__)


@dataclass
class PricingViolation:
    category_id: str | None
    message: str


def check_pricing(
    categories: Sequence[PricingCategory],
    *,
    min_participants: int | None = None,
    max_participants: int | None = None,
) -> list[PricingViolation]:
    """Evaluate participant bounds locally.

    Per category: ``min_participants <= units <= max_participants``, and when
    ``max_participants_depends`` is set, ``units <= other.units * multiplier``.
    The optional availability-wide bounds apply to the total unit count.
    """
    violations: list[PricingViolation] = []
    by_id = {c.id: c for c in categories}

    for category in categories:
        if category.units < category.min_participants:
            violations.append(
                PricingViolation(
                    category.id,
                    f"{category.label}: at least {category.min_participants} required",
                )
            )
        if category.max_participants is not None and category.units > category.max_participants:
            violations.append(
                PricingViolation(
                    category.id,
                    f"{category.label}: at most {category.max_participants} allowed",
                )
            )

        dep = category.max_participants_depends
        if dep is None:
            continue
        other = by_id.get(dep.pricing_category_id)
        other_units = other.units if other else 0
        limit = other_units * dep.multiplier
        if category.units > limit:
            violations.append(
                PricingViolation(
                    category.id,
                    dep.explanation
                    or f"{category.label}: at most {limit} for {other_units} "
                    f"{other.label if other else dep.pricing_category_id}",
                )
            )

    total = sum(c.units for c in categories)
    if min_participants is not None and total < min_participants:
        violations.append(PricingViolation(None, f"At least {min_participants} participants required"))
    if max_participants is not None and total > max_participants:
        violations.append(PricingViolation(None, f"At most {max_participants} participants allowed"))

    return violations


def configure(
    availability_id: str,
    options: Sequence[tuple[str, str]],
    pricing_categories: Sequence[tuple[str, int]],
    *,
    client: HolibobClient,
) -> AvailabilityDetail:
    """Apply options and pricing to an availability and verify it.

    Returns the detail after pricing. If the option list is still
    incomplete, the detail is returned as-is (not attachable) and pricing is
    not applied.

    Raises:
        ConfigurationInvalid: If the supplier reports isValid=false after pricing.
        SupplierApiError / TransportError: Supplier failures, verbatim.
    """
    detail: AvailabilityDetail | None = None

    if options:
        detail = client.set_options(availability_id, list(options))
        if not detail.is_complete:
            unanswered = len(detail.option_list.unanswered) if detail.option_list else 0
            logger.info(
                "availability_options_incomplete",
                extra={"availability_id": availability_id, "unanswered_count": unanswered},
            )
            return detail

    if pricing_categories:
        detail = client.set_pricing(availability_id, list(pricing_categories))
    elif detail is None:
        detail = client.get_availability(availability_id)

    if not detail.is_valid:
        violations = check_pricing(
            detail.pricing_categories,
            min_participants=detail.min_participants,
            max_participants=detail.max_participants,
        )
        logger.warning(
            "availability_configuration_invalid",
            extra={"availability_id": availability_id, "violation_count": len(violations)},
        )
        raise ConfigurationInvalid(availability_id, violations=violations, detail=detail)

    logger.info(
        "availability_configured",
        extra={
            "availability_id": availability_id,
            "total_gross": detail.total_price.gross if detail.total_price else None,
        },
    )
    return detail


def discover(product_id: str, date_from: str, date_to: str, *, client: HolibobClient) -> AvailabilityList:
    return client.discover_availability(product_id, date_from, date_to)
