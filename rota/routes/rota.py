"""
Rota API Routes
HTTP endpoints for the shared rota grid, slot toggles and the caller's identity.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from rota.auth.verify import auth_dependency
from rota.infrastructure.observability.logging import get_logger
from rota.models.api.rota_request import DisplayNameRequest
from rota.models.api.rota_response import (
    DayResponse,
    IdentityResponse,
    RotaBoardResponse,
    SlotResponse,
    ToggleResponse,
    WeekResponse,
)
from rota.models.domain.identity_domain import Identity
from rota.models.domain.slot_domain import InvalidSlotIdError
from rota.services.claim_service import ToggleStatus
from rota.services.identity.name_store import DisplayNameError
from rota.services.rota_service import RotaService

logger = get_logger(__name__)

router = APIRouter(prefix="/rota", tags=["rota"])


def get_rota_service(request: Request) -> RotaService:
    return request.app.state.rota


async def get_identity(
    claims: dict = Depends(auth_dependency),
    rota: RotaService = Depends(get_rota_service),
) -> Identity:
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return await rota.identity_for(user_id)


def _identity_response(identity: Identity, rota: RotaService) -> IdentityResponse:
    return IdentityResponse(
        user_id=identity.user_id,
        display_name=identity.display_name,
        color=identity.color if identity.display_name else None,
        can_claim=rota.can_claim(identity),
    )


@router.get("", response_model=RotaBoardResponse)
async def get_rota(
    weeks: int | None = Query(None, ge=1, le=52, description="Weeks to show"),
    identity: Identity = Depends(get_identity),
    rota: RotaService = Depends(get_rota_service),
):
    """Rota grid anchored to the current week, with each slot's state for the caller."""
    week_responses = []
    for week in rota.weeks(weeks):
        views = rota.slot_views(week, identity)
        week_responses.append(
            WeekResponse(
                id=week.id,
                label=week.range_label,
                days=[
                    DayResponse(
                        date=day.date,
                        day_name=day.day_name,
                        label=day.label,
                        is_today=day.is_today,
                        slots=[
                            SlotResponse(
                                slot_id=view.slot_id,
                                task=view.task,
                                state=view.state.value,
                                claimant_name=view.claim.claimant_name if view.claim else None,
                                claimant_color=view.claim.claimant_color if view.claim else None,
                                claimed_at=view.claim.claimed_at if view.claim else None,
                            )
                            for view in views[day.date]
                        ],
                    )
                    for day in week.days
                ],
            )
        )

    return RotaBoardResponse(
        mode=rota.mode,
        sync_status=rota.sync_status.value,
        can_claim=rota.can_claim(identity),
        identity=_identity_response(identity, rota),
        tasks=list(rota.config.tasks),
        weeks=week_responses,
        claimed_count=len(rota.reconciler.claims),
    )


@router.post("/slots/{slot_id}/toggle", response_model=ToggleResponse)
async def toggle_slot(
    slot_id: str,
    identity: Identity = Depends(get_identity),
    rota: RotaService = Depends(get_rota_service),
):
    """Claim an open slot, release your own, leave other people's alone."""
    try:
        result = await rota.toggle(identity, slot_id)
    except InvalidSlotIdError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if result.status is ToggleStatus.NOT_READY:
        if rota.mode == "offline":
            detail = "Rota is in offline mode"
        elif not rota.claims.synced:
            detail = "Rota is still syncing, try again shortly"
        else:
            detail = "Set your display name before claiming slots"
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    if result.status is ToggleStatus.FAILED:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to update slot, try again",
        )

    return ToggleResponse(
        slot_id=result.slot_id,
        status=result.status.value,
        previous_state=result.previous_state.value if result.previous_state else None,
    )


@router.get("/me", response_model=IdentityResponse)
async def get_me(
    identity: Identity = Depends(get_identity),
    rota: RotaService = Depends(get_rota_service),
):
    """The caller's display name, color and readiness to claim."""
    return _identity_response(identity, rota)


@router.put("/me", response_model=IdentityResponse)
async def set_my_name(
    body: DisplayNameRequest,
    identity: Identity = Depends(get_identity),
    rota: RotaService = Depends(get_rota_service),
):
    """Set or change the caller's display name."""
    try:
        updated = await rota.rename(identity, body.display_name)
    except DisplayNameError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return _identity_response(updated, rota)
