"""Business number management endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter
from sqlalchemy.exc import IntegrityError

from wacrm.api.deps import CurrentAccount, DbSession
from wacrm.core.exceptions import ConflictError, NotFoundError
from wacrm.db.repositories import WhatsAppNumberRepository
from wacrm.models.whatsapp_number import NumberStatus
from wacrm.schemas import WhatsAppNumberCreate, WhatsAppNumberDetail, WhatsAppNumberUpdate
from wacrm.services.whatsapp_client import WhatsAppCloudClient

router = APIRouter(prefix="/whatsapp-numbers", tags=["whatsapp-numbers"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[WhatsAppNumberDetail])
async def list_numbers(
    db: DbSession,
    account_id: CurrentAccount,
):
    """List the account's business numbers, newest first."""
    return await WhatsAppNumberRepository(db).list_for_account(account_id)


@router.post("", response_model=WhatsAppNumberDetail, status_code=201)
async def register_number(
    data: WhatsAppNumberCreate,
    db: DbSession,
    account_id: CurrentAccount,
):
    """Register a business number; it starts pending approval."""
    repo = WhatsAppNumberRepository(db)

    if await repo.get_by_number(data.number):
        raise ConflictError("This WhatsApp number is already registered")

    try:
        number = await repo.create(
            account_id=account_id,
            number=data.number,
            display_name=data.display_name,
            phone_number_id=data.phone_number_id,
            status=NumberStatus.PENDING.value,
        )
    except IntegrityError:
        await db.rollback()
        raise ConflictError("This WhatsApp number is already registered")

    logger.info(f"Registered WhatsApp number {number.id} for account {account_id}")
    return number


@router.patch("/{number_id}", response_model=WhatsAppNumberDetail)
async def update_number(
    number_id: UUID,
    data: WhatsAppNumberUpdate,
    db: DbSession,
    account_id: CurrentAccount,
):
    """Update display name, Cloud API id or approval status."""
    repo = WhatsAppNumberRepository(db)
    number = await repo.get_for_account(account_id, number_id)
    if not number:
        raise NotFoundError("WhatsApp number", str(number_id))

    try:
        return await repo.update(number, **data.model_dump(mode="json", exclude_unset=True))
    except IntegrityError:
        await db.rollback()
        raise ConflictError("phone_number_id is already registered")


@router.delete("/{number_id}", status_code=204)
async def delete_number(
    number_id: UUID,
    db: DbSession,
    account_id: CurrentAccount,
):
    """Remove a business number."""
    repo = WhatsAppNumberRepository(db)
    number = await repo.get_for_account(account_id, number_id)
    if not number:
        raise NotFoundError("WhatsApp number", str(number_id))

    await repo.delete(number)


@router.get("/{number_id}/business-profile")
async def get_business_profile(
    number_id: UUID,
    db: DbSession,
    account_id: CurrentAccount,
):
    """Fetch the number's business profile from the Cloud API."""
    number = await WhatsAppNumberRepository(db).get_for_account(account_id, number_id)
    if not number or not number.can_send or not number.phone_number_id:
        raise NotFoundError("Approved WhatsApp number", str(number_id))

    client = WhatsAppCloudClient(number.phone_number_id)
    result = await client.get_business_profile()
    profiles = result.get("data") or [{}]
    return {"display_name": number.display_name, **profiles[0]}
