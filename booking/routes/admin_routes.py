import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from booking.auth.dependencies import Principal, get_backend, require_admin
from booking.core.validation import is_uuid, parse_timestamp
from booking.errors import StoreError
from booking.routes.appointment_routes import AppointmentListResponse, serialize_appointment
from booking.services.backend import BackendClient

router = APIRouter(tags=['admin'])

logger = logging.getLogger(__name__)


@router.delete('/appointments/{appointment_id}')
def delete_appointment(
    appointment_id: str,
    principal: Principal = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    """Permanently remove an appointment. Unlike cancelling, the row is gone afterwards."""
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

    try:
        deleted = backend.appointments.delete(appointment_id)
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not delete appointment.',
        ) from exc

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )

    logger.info('Admin %s deleted appointment %s.', principal.user_id, appointment_id)
    return {'success': True}


@router.get('/calendar/week', response_model=AppointmentListResponse, dependencies=[Depends(require_admin)])
def list_week_appointments(
    week_start: str | None = Query(default=None, alias='weekStart'),
    week_end: str | None = Query(default=None, alias='weekEnd'),
    backend: BackendClient = Depends(get_backend),
):
    start = parse_timestamp(week_start)
    end = parse_timestamp(week_end)

    if start is None or end is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='weekStart and weekEnd must be valid ISO date strings.',
        )

    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='weekStart must be before or equal to weekEnd.',
        )

    try:
        records = backend.appointments.find_in_range(start, end)
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not load appointments.',
        ) from exc

    return AppointmentListResponse(appointments=[serialize_appointment(record) for record in records])
