from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from qrpay.models.amounts import ContractIn, EditedField, FieldEditIn
from qrpay.models.payment import DisplayOut, PaymentStateOut
from qrpay.services.session import DisplayState, PaymentSession

"""Payment form router.

Endpoints:
    - GET  /payment                  -> current inputs + display state
    - PUT  /payment/fields/{field}   -> user edit of rate / amount_a / amount_b
    - PUT  /payment/contract         -> contract clause toggle + number
    - POST /payment/format/next      -> cycle QR format
    - POST /payment/refresh          -> recompute without editing
    - GET  /payment/qr.png           -> rendered image (404 when none)
"""

router = APIRouter(prefix="/payment", tags=["payment"])

EDITABLE_FIELDS = {
    "rate": EditedField.RATE,
    "amount_a": EditedField.AMOUNT_A,
    "amount_b": EditedField.AMOUNT_B,
}


def get_session(request: Request) -> PaymentSession:
    return request.app.state.session


def display_out(state: DisplayState) -> DisplayOut:
    return DisplayOut(
        status=state.status,
        caption=state.caption,
        payload=state.payload,
        has_image=state.artifact is not None,
        errors=list(state.errors),
    )


def state_out(session: PaymentSession) -> PaymentStateOut:
    f = session.fields
    return PaymentStateOut(
        rate=f.rate,
        amount_a=f.amount_a,
        amount_b=f.amount_b,
        last_edited=session.last_edited.value,
        contract_enabled=f.contract_enabled,
        contract_number=f.contract_number,
        format=session.format,
        format_description=session.format.description,
        generating=session.generating,
        display=display_out(session.display),
    )


@router.get("", response_model=PaymentStateOut, summary="Current payment state")
async def get_state(session: PaymentSession = Depends(get_session)):
    return state_out(session)


@router.put(
    "/fields/{field}",
    response_model=PaymentStateOut,
    summary="Edit one of the linked amount fields",
)
async def edit_field(
    field: str,
    payload: FieldEditIn,
    session: PaymentSession = Depends(get_session),
):
    edited = EDITABLE_FIELDS.get(field)
    if edited is None:
        raise HTTPException(
            status_code=404,
            detail=f"unknown field '{field}'; expected one of {sorted(EDITABLE_FIELDS)}",
        )
    await session.edit(edited, payload.value)
    return state_out(session)


@router.put("/contract", response_model=PaymentStateOut, summary="Set contract clause")
async def set_contract(payload: ContractIn, session: PaymentSession = Depends(get_session)):
    if payload.enabled and not payload.number:
        raise HTTPException(status_code=400, detail="contract number required when enabled")
    await session.set_contract(payload.enabled, payload.number)
    return state_out(session)


@router.post("/format/next", response_model=PaymentStateOut, summary="Cycle QR format")
async def next_format(session: PaymentSession = Depends(get_session)):
    await session.cycle_format()
    return state_out(session)


@router.post("/refresh", response_model=PaymentStateOut, summary="Recompute payload")
async def refresh(session: PaymentSession = Depends(get_session)):
    await session.refresh()
    return state_out(session)


@router.get("/qr.png", summary="Rendered QR image")
async def qr_image(session: PaymentSession = Depends(get_session)):
    artifact = session.display.artifact
    if artifact is None:
        raise HTTPException(status_code=404, detail="no QR code available")
    return Response(content=artifact.png, media_type="image/png")
