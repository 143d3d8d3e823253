"""Public-facing routes."""

from fastapi import APIRouter

from experiencess.api.routes import availability, booking, webhooks_stripe

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(availability.router)
router.include_router(booking.router)
router.include_router(webhooks_stripe.router)
