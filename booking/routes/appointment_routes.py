import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from booking.auth.dependencies import get_backend, get_current_identity
from booking.core.validation import is_uuid, parse_timestamp
from booking.errors import SlotAlreadyBooked, StoreError
from booking.models.appointment import APPOINTMENT_TYPES, BOOKED_STATUS, CANCELLED_STATUS
from booking.services.appointments import AppointmentRecord
from booking.services.backend import BackendClient
from booking.services.identity import Identity

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)


class CreateAppointmentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str | None = Field(default=None, validate_default=True)
    starts_at: datetime | None = Field(default=None, alias='startsAt', validate_default=True)

    @field_validator('type', mode='before')
    @classmethod
    def validate_type(cls, value: object) -> str:
        normalized = value.strip() if isinstance(value, str) else ''
        if normalized not in APPOINTMENT_TYPES:
            raise ValueError("Invalid type. Use 'free_intro' or 'session'.")
        return normalized

    @field_validator('starts_at', mode='before')
    @classmethod
    def validate_starts_at(cls, value: object) -> datetime:
        if value is None or value == '':
            raise ValueError('startsAt is required.')

        parsed = parse_timestamp(value) if isinstance(value, str) else None
        if parsed is None:
            raise ValueError('startsAt must be a valid ISO timestamp.')
        return parsed


class AppointmentResponse(BaseModel):
    id: str
    user_id: str
    type: str
    starts_at: datetime
    status: str
    created_at: datetime


class AppointmentEnvelope(BaseModel):
    appointment: AppointmentResponse


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]


def serialize_appointment(record: AppointmentRecord) -> AppointmentResponse:
    return AppointmentResponse(
        id=record.id,
        user_id=record.user_id,
        type=record.type,
        starts_at=record.starts_at,
        status=record.status,
        created_at=record.created_at,
    )


@router.get('', response_model=AppointmentListResponse)
def list_my_appointments(
    identity: Identity = Depends(get_current_identity),
    backend: BackendClient = Depends(get_backend),
):
    try:
        records = backend.appointments.find_by_owner_from_now(identity.user_id, datetime.now(timezone.utc))
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not load appointments.',
        ) from exc

    return AppointmentListResponse(appointments=[serialize_appointment(record) for record in records])


@router.post('', response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    identity: Identity = Depends(get_current_identity),
    backend: BackendClient = Depends(get_backend),
):
    try:
        existing = backend.appointments.find_by_exact_start(data.starts_at, BOOKED_STATUS)
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not check availability.',
        ) from exc

    if existing:
        logger.info('Rejected booking at %s: slot held by appointment %s.', data.starts_at.isoformat(), existing.id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time slot is already booked.',
        )

    try:
        record = backend.appointments.insert(identity.user_id, data.type, data.starts_at)
    except SlotAlreadyBooked as exc:
        logger.info('Rejected booking at %s: slot taken concurrently.', data.starts_at.isoformat())
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time slot is already booked.',
        ) from exc
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not create appointment.',
        ) from exc

    return AppointmentEnvelope(appointment=serialize_appointment(record))


def cancel_own_appointment(appointment_id: str, identity: Identity, backend: BackendClient) -> AppointmentEnvelope:
    if not is_uuid(appointment_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid appointment id.',
        )

    try:
        appointment = backend.appointments.find_by_id(appointment_id)
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not load appointment.',
        ) from exc

    if appointment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )

    if appointment.user_id != identity.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You are not allowed to cancel this appointment.',
        )

    try:
        updated = backend.appointments.update_status(appointment_id, CANCELLED_STATUS)
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not cancel appointment.',
        ) from exc

    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )

    return AppointmentEnvelope(appointment=serialize_appointment(updated))


@router.post('/{appointment_id}/cancel', response_model=AppointmentEnvelope)
def cancel_appointment(
    appointment_id: str,
    identity: Identity = Depends(get_current_identity),
    backend: BackendClient = Depends(get_backend),
):
    return cancel_own_appointment(appointment_id, identity, backend)


@router.delete('/{appointment_id}', response_model=AppointmentEnvelope)
def delete_appointment(
    appointment_id: str,
    identity: Identity = Depends(get_current_identity),
    backend: BackendClient = Depends(get_backend),
):
    return cancel_own_appointment(appointment_id, identity, backend)
