"""Availability routes: discover slots, answer options, configure pricing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from experiencess.api.responses import error, ok
from experiencess.domain import availability as availability_domain
from experiencess.errors import ConfigurationInvalid, SupplierApiError, TransportError
from experiencess.infra.repositories.funnel_repository import FunnelStep, track_funnel_event
from experiencess.observability.logging import get_logger

if TYPE_CHECKING:
    from experiencess.holibob.client import HolibobClient

router = APIRouter(prefix="/api/availability", tags=["availability"])

logger = get_logger(__name__)

# Module-level holibob client (lazy init, can be overridden for tests)
_holibob_client: HolibobClient | None = None


def _get_holibob_client() -> HolibobClient:
    """Get holibob client (allows override in tests)."""
    global _holibob_client
    if _holibob_client is None:
        from experiencess.holibob.client import HolibobClient
        _holibob_client = HolibobClient()
    return _holibob_client


class OptionAnswer(BaseModel):
    id: str
    value: str


class CategoryUnits(BaseModel):
    id: str
    units: int = Field(..., ge=0)


class OptionsRequest(BaseModel):
    options: list[OptionAnswer]


class ConfigureRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    options: list[OptionAnswer] = []
    pricing_categories: list[CategoryUnits] = Field(default=[], alias="pricingCategories")
    product_id: str | None = Field(default=None, alias="productId")


def _supplier_error(e: Exception, availability_id: str | None = None) -> JSONResponse:
    if isinstance(e, SupplierApiError):
        logger.warning(
            "availability_supplier_error",
            extra={"availability_id": availability_id, "status_code": e.status_code},
        )
        return error(str(e), 404 if e.is_not_found else 400)
    logger.error(
        "availability_transport_error",
        extra={"availability_id": availability_id, "error_type": type(e).__name__},
    )
    return error("Failed to reach booking provider", 502)


@router.get("")
def discover_availability(
    product_id: str = Query(..., alias="productId"),
    date_from: str = Query(..., alias="dateFrom"),
    date_to: str = Query(..., alias="dateTo"),
) -> JSONResponse:
    """List bookable slots of a product in a date range."""
    try:
        result = availability_domain.discover(
            product_id, date_from, date_to, client=_get_holibob_client()
        )
    except (SupplierApiError, TransportError) as e:
        return _supplier_error(e)
    return ok(result)


@router.get("/{availability_id}")
def get_availability(availability_id: str) -> JSONResponse:
    try:
        detail = _get_holibob_client().get_availability(availability_id)
    except (SupplierApiError, TransportError) as e:
        return _supplier_error(e, availability_id)
    return ok(detail)


@router.post("/{availability_id}/options")
def set_options(availability_id: str, body: OptionsRequest) -> JSONResponse:
    """Apply one pass of option answers; ``isComplete`` says whether more are needed."""
    try:
        detail = _get_holibob_client().set_options(
            availability_id, [(o.id, o.value) for o in body.options]
        )
    except (SupplierApiError, TransportError) as e:
        return _supplier_error(e, availability_id)
    return ok(detail)


@router.post("/{availability_id}/configure")
def configure_availability(availability_id: str, body: ConfigureRequest) -> JSONResponse:
    """Apply options and pricing; 400 with violations when the result is not valid."""
    try:
        detail = availability_domain.configure(
            availability_id,
            [(o.id, o.value) for o in body.options],
            [(c.id, c.units) for c in body.pricing_categories],
            client=_get_holibob_client(),
        )
    except ConfigurationInvalid as e:
        return error(str(e), 400, violations=e.violations)
    except (SupplierApiError, TransportError) as e:
        return _supplier_error(e, availability_id)

    if detail.is_attachable:
        track_funnel_event(FunnelStep.AVAILABILITY_SELECTED, product_id=body.product_id)

    return ok(detail)
