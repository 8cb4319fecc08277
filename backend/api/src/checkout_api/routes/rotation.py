"""Rotation status and admin payment stats endpoints."""

import hmac

from fastapi import APIRouter, Depends, Header, Query

from checkout_api.dependencies import get_account_rotator, get_reporting_service
from checkout_api.models.rotation import RotationStatusResponse, StripeStatsResponse
from checkout_core.config import get_settings
from checkout_core.models import CheckoutError, ErrorCode, ErrorResponse
from checkout_core.services import AccountRotator, ReportingService

router = APIRouter(tags=["rotation"])


def require_admin_key(
    authorization: str | None = Header(default=None),
    key: str | None = Query(default=None),
) -> None:
    """Accept `Authorization: Bearer <ADMIN_SECRET_KEY>` or `?key=<ADMIN_SECRET_KEY>`.

    With no admin key configured every request is refused.
    """
    expected = get_settings().admin_secret_key
    if not expected:
        raise CheckoutError(ErrorCode.UNAUTHORIZED, details={"message": "Admin key not configured"})

    supplied = []
    if authorization and authorization.startswith("Bearer "):
        supplied.append(authorization.removeprefix("Bearer ").strip())
    if key:
        supplied.append(key)

    if not any(hmac.compare_digest(s.encode(), expected.encode()) for s in supplied):
        raise CheckoutError(ErrorCode.UNAUTHORIZED)


@router.get(
    "/rotation/status",
    summary="Current Stripe account rotation",
    response_model=RotationStatusResponse,
    responses={500: {"description": "No active account", "model": ErrorResponse}},
)
def get_rotation_status(
    rotator: AccountRotator = Depends(get_account_rotator),
) -> RotationStatusResponse:
    """Return the active account label, its slot and the next rotation time."""
    return RotationStatusResponse.from_status(rotator.get_rotation_status())


@router.get(
    "/admin/stripe-stats",
    summary="Today's payments per Stripe account",
    description="""
Aggregates today's (UTC) transactions per rotation-eligible account.

**Requires the admin key** as a Bearer token or `key` query parameter.
""",
    response_model=StripeStatsResponse,
    responses={401: {"description": "Missing or wrong admin key", "model": ErrorResponse}},
    dependencies=[Depends(require_admin_key)],
)
def get_stripe_stats(
    reporting: ReportingService = Depends(get_reporting_service),
) -> StripeStatsResponse:
    return StripeStatsResponse.from_report(reporting.daily_report())
