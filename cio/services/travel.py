"""
Travel sync: TripActions bookings into the travel base.
"""
from typing import Dict, Optional

import httpx
from sqlmodel import Session

from cio.clients.tripactions import Booking as TripActionsBooking
from cio.clients.tripactions import Destination
from cio.core.exceptions import APITokenNotFoundError
from cio.core.logging_config import log_info
from cio.models.company import Company
from cio.models.travel import Booking
from cio.services.api_tokens import authenticate_tripactions
from cio.services.records import AirtableSync, RecordService


def _place(destination: Destination) -> str:
    return ", ".join(part for part in (destination.city, destination.state, destination.country) if part)


def booking_from_tripactions(booking: TripActionsBooking, company: Company) -> Booking:
    length = ""
    if booking.start_date and booking.end_date:
        days = (booking.end_date - booking.start_date).days
        length = f"{days} day{'s' if days != 1 else ''}"

    origin = _place(booking.origin)
    destination = _place(booking.destination)
    description = f"{booking.booking_type} {origin} -> {destination}".strip() if origin or destination else booking.booking_type

    return Booking(
        booking_id=booking.booking_id or booking.uuid,
        booked_at=booking.created,
        last_modified_at=booking.last_modified,
        cancelled_at=booking.cancelled_at,
        booking_type=booking.booking_type,
        status=booking.booking_status,
        vendor=booking.vendor,
        flight=booking.flight,
        cabin=booking.cabin,
        start_date=booking.start_date,
        end_date=booking.end_date,
        passengers=[p.email for p in booking.passengers if p.email],
        booker=booking.booker.email,
        origin=origin,
        destination=destination,
        length=length,
        description=description,
        currency=booking.currency,
        grand_total=booking.usd_grand_total or booking.grand_total,
        purpose=booking.purpose,
        reason=booking.reason,
        cio_company_id=company.id,
    )


async def refresh_trip_actions(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, int]:
    """Import the last year of bookings and mirror them to Airtable."""
    try:
        client = await authenticate_tripactions(session, company, http_client=http_client)
    except APITokenNotFoundError:
        log_info("No TripActions token, skipping bookings", company=company.name)
        return {"created": 0, "updated": 0, "deleted": 0}

    service = RecordService(Booking, session)

    bookings = await client.get_bookings()
    for booking in bookings:
        service.upsert(booking_from_tripactions(booking, company))
    log_info(f"Imported {len(bookings)} bookings", company=company.name)

    sync = AirtableSync.for_company(service, company, http_client=http_client)
    return await sync.update_airtable(service.list_for_company(company.id))
