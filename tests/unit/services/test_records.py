"""
Unit tests for RecordService and Airtable reconciliation.
"""
from typing import Any, Dict, List

import pytest

from cio.clients.airtable import Record
from cio.core.exceptions import CompanyNotFoundError, RecordNotFoundError
from cio.models.travel import Booking
from cio.services.records import AirtableSync, RecordService, fields_differ, record_from_airtable


class FakeAirtable:
    """In-memory stand-in for AirtableClient that keeps the calls it receives."""

    def __init__(self, records: List[Record] = None):
        self.records = {r.id: r for r in records or []}
        self.created: List[Dict[str, Any]] = []
        self.updated: List[Record] = []
        self.deleted: List[str] = []
        self._next = 0

    async def list_records(self, table, view="Grid view", fields=None):
        return list(self.records.values())

    async def get_record(self, table, record_id):
        return self.records[record_id]

    async def create_records(self, table, records):
        created = []
        for fields in records:
            self._next += 1
            record = Record(id=f"recNew{self._next}", fields=fields)
            self.records[record.id] = record
            created.append(record)
        self.created.extend(records)
        return created

    async def update_records(self, table, records):
        self.updated.extend(records)
        return records

    async def delete_records(self, table, record_ids):
        self.deleted.extend(record_ids)
        return record_ids


def _booking(company, booking_id: str, **fields) -> Booking:
    return Booking(booking_id=booking_id, cio_company_id=company.id, **fields)


class TestRecordService:
    def test_upsert_inserts_then_updates_on_match_fields(self, session, company):
        service = RecordService(Booking, session)

        first = service.upsert(_booking(company, "B1", vendor="United"))
        second = service.upsert(_booking(company, "B1", vendor="Alaska"))

        assert first.id == second.id
        assert second.vendor == "Alaska"
        assert len(service.list_all()) == 1

    def test_upsert_keeps_same_key_apart_per_company(self, session, company, other_company):
        service = RecordService(Booking, session)

        ours = service.upsert(_booking(company, "B1", vendor="United"))
        theirs = service.upsert(_booking(other_company, "B1", vendor="Alaska"))

        assert ours.id != theirs.id
        assert [b.vendor for b in service.list_for_company(company.id)] == ["United"]
        assert [b.vendor for b in service.list_for_company(other_company.id)] == ["Alaska"]

    def test_upsert_keeps_known_airtable_record_id(self, session, company):
        service = RecordService(Booking, session)
        stored = service.create(_booking(company, "B1", airtable_record_id="recB1"))

        updated = service.upsert(_booking(company, "B1", status="CANCELLED"))

        assert updated.id == stored.id
        assert updated.airtable_record_id == "recB1"
        assert updated.status == "CANCELLED"

    def test_list_for_company_filters(self, session, company, other_company):
        service = RecordService(Booking, session)
        service.create(_booking(company, "B1"))
        service.create(_booking(other_company, "B2"))

        assert [b.booking_id for b in service.list_for_company(company.id)] == ["B1"]

    def test_get_by_id_raises_when_missing(self, session):
        with pytest.raises(RecordNotFoundError):
            RecordService(Booking, session).get_by_id(999)

    def test_company_of_record(self, session, company):
        service = RecordService(Booking, session)
        booking = service.create(_booking(company, "B1"))

        assert service.company(booking).name == "Oxide"

        booking.cio_company_id = 999
        with pytest.raises(CompanyNotFoundError):
            service.company(booking)

    def test_delete_removes_row(self, session, company):
        service = RecordService(Booking, session)
        booking = service.create(_booking(company, "B1"))

        service.delete(booking)

        assert service.get_from_db(booking_id="B1") is None


class TestFieldsDiffer:
    def test_missing_and_empty_values_are_equal(self):
        """Airtable drops empty strings, empty lists and unchecked boxes."""
        assert not fields_differ({"name": "", "tags": [], "done": False}, {})

    def test_whole_floats_match_ints(self):
        assert not fields_differ({"amount": 12.0}, {"amount": 12})

    def test_timestamps_compare_as_datetimes(self):
        assert not fields_differ(
            {"booked_at": "2021-01-02T03:04:05+00:00"},
            {"booked_at": "2021-01-02T03:04:05.000Z"},
        )

    def test_changed_value_differs(self):
        assert fields_differ({"status": "BOOKED"}, {"status": "CANCELLED"})


def test_record_from_airtable_skips_unknown_and_linked_fields(company):
    booking = record_from_airtable(
        Booking,
        {"booking_id": "B9", "vendor": ["recVendor"], "Unknown Column": 1, "id": 42},
        cio_company_id=company.id,
    )

    assert booking.booking_id == "B9"
    assert booking.vendor == ""
    assert booking.id is None


class TestUpdateAirtable:
    @pytest.mark.asyncio
    async def test_reconciles_table_with_rows(self, session, company):
        service = RecordService(Booking, session)
        unchanged = service.create(_booking(company, "B1", vendor="United"))
        unchanged.airtable_record_id = "recB1"
        unchanged = service.update(unchanged)
        renamed = service.create(_booking(company, "B2", vendor="Alaska"))
        new = service.create(_booking(company, "B3", vendor="Delta"))

        fake = FakeAirtable([
            Record(id="recB1", fields=unchanged.update_airtable_record()),
            # Matched through the ``id`` field, stale vendor
            Record(id="recB2", fields={**renamed.update_airtable_record(), "vendor": "Virgin"}),
            Record(id="recOrphan", fields={"id": 999, "booking_id": "gone"}),
        ])
        sync = AirtableSync.for_company(service, company, client=fake)

        counts = await sync.update_airtable(service.list_for_company(company.id))

        assert counts == {"created": 1, "updated": 1, "deleted": 1}
        assert [r.id for r in fake.updated] == ["recB2"]
        assert fake.updated[0].fields["vendor"] == "Alaska"
        assert fake.created[0]["booking_id"] == "B3"
        assert fake.deleted == ["recOrphan"]

        session.refresh(renamed)
        session.refresh(new)
        assert renamed.airtable_record_id == "recB2"
        assert new.airtable_record_id == "recNew1"

    @pytest.mark.asyncio
    async def test_records_without_row_id_are_kept(self, session, company):
        service = RecordService(Booking, session)
        fake = FakeAirtable([
            Record(id="recHand", fields={"booking_id": "typed in Airtable"}),
            Record(id="recStale", fields={"id": 41, "booking_id": "B0"}),
        ])
        sync = AirtableSync.for_company(service, company, client=fake)

        counts = await sync.update_airtable([])

        assert counts == {"created": 0, "updated": 0, "deleted": 1}
        assert fake.deleted == ["recStale"]

    @pytest.mark.asyncio
    async def test_upsert_in_airtable_creates_then_updates(self, session, company):
        service = RecordService(Booking, session)
        booking = service.create(_booking(company, "B1"))
        fake = FakeAirtable()
        sync = AirtableSync.for_company(service, company, client=fake)

        booking = await sync.upsert_in_airtable(booking)
        assert booking.airtable_record_id == "recNew1"

        booking.status = "CANCELLED"
        await sync.upsert_in_airtable(booking)
        assert fake.updated[0].id == "recNew1"
        assert fake.updated[0].fields["status"] == "CANCELLED"

    @pytest.mark.asyncio
    async def test_delete_removes_airtable_record_and_row(self, session, company):
        service = RecordService(Booking, session)
        booking = service.create(_booking(company, "B1", airtable_record_id="recB1"))
        fake = FakeAirtable()
        sync = AirtableSync.for_company(service, company, client=fake)

        await sync.delete(booking)

        assert fake.deleted == ["recB1"]
        assert service.get_from_db(booking_id="B1") is None

    def test_for_company_uses_model_base(self, session, company):
        sync = AirtableSync.for_company(RecordService(Booking, session), company)
        assert sync.client.base_id == "appTravel"
        assert sync.table == "Bookings"
