# app/routers/addresses.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.schemas.address import AddressCreate, AddressRead, AddressUpdate, AddressValidation
from app.services.address_service import AddressService, validate_address

router = APIRouter(prefix="/addresses", tags=["Addresses"])

service = AddressService(AddressRepository())


@router.get("", response_model=list[AddressRead])
def list_addresses(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Active addresses of the current user, defaults first.
    """
    return service.list_addresses(session, current_user.id)


@router.get("/defaults", response_model=list[AddressRead])
def list_default_addresses(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.list_defaults(session, current_user.id)


@router.post("/validate", response_model=AddressValidation)
def check_address(
    payload: AddressCreate,
    current_user: User = Depends(require_user),
):
    """
    Check an address before saving it. Returns warnings that make it
    invalid and optional formatting suggestions.
    """
    return validate_address(payload)


@router.get("/{address_id}", response_model=AddressRead)
def get_address(
    address_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.get_address(session, current_user.id, address_id)


@router.post("", response_model=AddressRead, status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Save a new address. The first address becomes the default.
    """
    return service.create_address(session, current_user.id, payload)


@router.put("/{address_id}", response_model=AddressRead)
def update_address(
    address_id: uuid.UUID,
    payload: AddressUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.update_address(session, current_user.id, address_id, payload)


@router.put("/{address_id}/default", response_model=AddressRead)
def set_default_address(
    address_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.set_default(session, current_user.id, address_id)


@router.delete("/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_address(
    address_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Remove an address from the book. Placed orders keep their own copy.
    """
    service.delete_address(session, current_user.id, address_id)
    return None
