"""Payment instructions shown in every new box (content, QR image, fee)."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from paybox.admin.deps import get_admin_actor
from paybox.api.deps import get_clock
from paybox.core.clock import Clock
from paybox.core.database import get_db
from paybox.schemas import SettingsRequest, SettingsResponse
from paybox.services import box_settings
from paybox.services.state_machine import Actor

router = APIRouter()


@router.get("", response_model=SettingsResponse)
def settings_get(_: Actor = Depends(get_admin_actor), db: Session = Depends(get_db)):
    row = box_settings.get_settings(db)
    if row is None:
        return SettingsResponse()
    return SettingsResponse.model_validate(row, from_attributes=True)


@router.put("", response_model=SettingsResponse)
def settings_save(
    body: SettingsRequest,
    _: Actor = Depends(get_admin_actor),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    row = box_settings.update_settings(
        db,
        content=body.content,
        image_url=body.image_url,
        has_fee=body.has_fee,
        transaction_fee=body.transaction_fee,
        now=clock(),
    )
    return SettingsResponse.model_validate(row, from_attributes=True)
