"""
TripActions (Navan) travel API client.
"""
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cio.clients.base import ClientCredentialsClient

ENDPOINT = "https://api.tripactions.com/v1/"
TOKEN_ENDPOINT = "https://api.tripactions.com/ta-auth/oauth/token"
BOOKINGS_LOOKBACK = timedelta(weeks=52)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Passenger(_CamelModel):
    person: dict = Field(default_factory=dict)

    @property
    def email(self) -> str:
        return self.person.get("email", "")

    @property
    def name(self) -> str:
        return self.person.get("name", "")


class Booker(_CamelModel):
    uuid: str = ""
    name: str = ""
    email: str = ""
    department: str = ""
    cost_center: str = ""


class Destination(_CamelModel):
    city: str = ""
    state: str = ""
    country: str = ""
    airport_code: str = ""


class Booking(_CamelModel):
    uuid: str = ""
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    booking_id: str = ""
    booking_type: str = ""
    booking_status: str = ""
    vendor: str = ""
    cabin: str = ""
    flight: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    cancelled_at: Optional[datetime] = None
    passengers: List[Passenger] = Field(default_factory=list)
    booker: Booker = Field(default_factory=Booker)
    origin: Destination = Field(default_factory=Destination)
    destination: Destination = Field(default_factory=Destination)
    currency: str = ""
    grand_total: float = 0.0
    usd_grand_total: float = 0.0
    purpose: str = ""
    reason: str = ""
    out_of_policy: bool = False


class Page(_CamelModel):
    total_pages: int = 0
    current_page: int = 0
    page_size: int = 0
    total_elements: int = 0


class BookingsResponse(_CamelModel):
    data: List[Booking] = Field(default_factory=list)
    page: Page = Field(default_factory=Page)


class TripActionsClient(ClientCredentialsClient):
    product = "tripactions"
    base_url = ENDPOINT
    token_url = TOKEN_ENDPOINT

    async def get_bookings(self) -> List[Booking]:
        """Bookings created in the last 52 weeks, across every page."""
        await self._ensure_token()

        now = datetime.now(timezone.utc)
        window = {
            "createdFrom": str(int((now - BOOKINGS_LOOKBACK).timestamp())),
            "createdTo": str(int(now.timestamp())),
        }

        body = BookingsResponse.model_validate(await self._get_json("bookings", params=window))
        bookings = list(body.data)

        page = body.page.current_page + 1
        while page <= body.page.total_pages - 1:
            body = BookingsResponse.model_validate(
                await self._get_json("bookings", params={**window, "page": str(page)})
            )
            bookings.extend(body.data)
            page = body.page.current_page + 1

        return bookings
