"""
Generic persistence and Airtable mirroring for ``AirtableRecord`` models.

``RecordService`` covers the database side (create, upsert on the model's
match fields, lookups, per-company listing). ``AirtableSync`` mirrors rows
into the model's Airtable table, either one at a time or with a full
reconciliation of the table against the database.
"""
import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from cio.clients.airtable import AirtableClient, Record
from cio.core.config import settings
from cio.core.exceptions import CompanyNotFoundError, RecordNotFoundError
from cio.core.logging_config import LogCategory, log_error
from cio.core.time_utils import parse_datetime
from cio.models.base import AirtableRecord
from cio.models.company import Company

logger = logging.getLogger(LogCategory.SYNC)

T = TypeVar("T", bound=AirtableRecord)


class RecordService(Generic[T]):
    """Database operations for one record model."""

    def __init__(self, model: Type[T], session: Session):
        self.model = model
        self.session = session

    def _commit(self, record: T) -> T:
        self.session.add(record)
        try:
            self.session.commit()
            self.session.refresh(record)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, model=self.model.__name__)
            raise
        return record

    def create(self, record: T) -> T:
        return self._commit(record)

    def upsert(self, record: T) -> T:
        """Insert ``record`` or copy it onto the row with the same match values."""
        existing = self.get_from_db(**record.match_values())
        if existing is None:
            return self.create(record)

        existing.copy_from(record)
        return self._commit(existing)

    def get_from_db(self, **match: Any) -> Optional[T]:
        statement = select(self.model)
        for name, value in match.items():
            statement = statement.where(getattr(self.model, name) == value)
        return self.session.exec(statement).first()

    def get_by_id(self, record_id: int) -> T:
        record = self.session.get(self.model, record_id)
        if record is None:
            raise RecordNotFoundError(f"{self.model.__name__} {record_id} not found")
        return record

    def get_by_airtable_id(self, airtable_record_id: str) -> T:
        record = self.get_from_db(airtable_record_id=airtable_record_id)
        if record is None:
            raise RecordNotFoundError(f"{self.model.__name__} with Airtable id {airtable_record_id} not found")
        return record

    def list_all(self) -> List[T]:
        return list(self.session.exec(select(self.model).order_by(self.model.id.desc())))

    def list_for_company(self, cio_company_id: int) -> List[T]:
        statement = (
            select(self.model)
            .where(self.model.cio_company_id == cio_company_id)
            .order_by(self.model.id.desc())
        )
        return list(self.session.exec(statement))

    def update(self, record: T) -> T:
        return self._commit(record)

    def delete(self, record: T) -> None:
        try:
            self.session.delete(record)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            log_error(exc, model=self.model.__name__)
            raise

    def company(self, record: T) -> Company:
        company_id = getattr(record, "cio_company_id", None)
        company = self.session.get(Company, company_id) if company_id is not None else None
        if company is None:
            raise CompanyNotFoundError(f"Company {company_id} not found")
        return company


def record_from_airtable(model: Type[T], fields: Dict[str, Any], **overrides: Any) -> T:
    """Build a model from Airtable fields, skipping unknown columns and linked-record lists."""
    known = {
        name: value
        for name, value in fields.items()
        if name in model.model_fields
        and name not in ("id", "airtable_record_id")
        and not (isinstance(value, (list, dict)) and model.model_fields[name].annotation is str)
    }
    known.update(overrides)
    return model.model_validate(known)


def _normalize(value: Any) -> Any:
    # Airtable omits empty strings, empty lists and false checkboxes
    if value in (None, "", [], {}, False):
        return None
    if isinstance(value, str):
        parsed = parse_datetime(value) if "T" in value and value[:4].isdigit() else None
        return parsed or value.strip()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def fields_differ(fields: Dict[str, Any], existing: Dict[str, Any]) -> bool:
    """True if any outgoing field differs from the Airtable record."""
    return any(_normalize(value) != _normalize(existing.get(name)) for name, value in fields.items())


class AirtableSync(Generic[T]):
    """Mirror one model's rows into its Airtable table."""

    def __init__(
        self,
        service: RecordService[T],
        base_id: str,
        *,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        client: Optional[AirtableClient] = None,
        company: Optional[Company] = None,
    ):
        self.service = service
        self.model = service.model
        self.table = self.model.__airtable_table__
        self.company = company
        self.client = client or AirtableClient(
            api_key or settings.airtable_api_key,
            base_id,
            http_client=http_client,
        )

    @classmethod
    def for_company(cls, service: RecordService[T], company: Company, **kwargs: Any) -> "AirtableSync[T]":
        """Sync bound to the company's base for the model."""
        base_id = company.airtable_base_id(service.model.__airtable_base__)
        return cls(service, base_id, company=company, **kwargs)

    def _context(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return {"company": self.company, **context}

    async def create_in_airtable(self, record: T, **context: Any) -> T:
        fields = record.update_airtable_record(None, **self._context(context))
        created = await self.client.create_records(self.table, [fields])
        if created:
            record.airtable_record_id = created[0].id
            record = self.service.update(record)
        return record

    async def update_in_airtable(self, record: T, existing: Optional[Dict[str, Any]] = None, **context: Any) -> T:
        fields = record.update_airtable_record(existing, **self._context(context))
        await self.client.update_records(self.table, [Record(id=record.airtable_record_id, fields=fields)])
        return record

    async def upsert_in_airtable(self, record: T, **context: Any) -> T:
        if record.airtable_record_id:
            existing = await self.client.get_record(self.table, record.airtable_record_id)
            return await self.update_in_airtable(record, existing.fields, **context)
        return await self.create_in_airtable(record, **context)

    async def delete_from_airtable(self, record: T) -> None:
        if record.airtable_record_id:
            await self.client.delete_records(self.table, [record.airtable_record_id])

    async def delete(self, record: T) -> None:
        """Delete the row and its Airtable record."""
        await self.delete_from_airtable(record)
        self.service.delete(record)

    async def update_airtable(self, records: List[T], **context: Any) -> Dict[str, int]:
        """
        Reconcile the Airtable table with ``records``.

        Airtable records are matched to rows by record id, falling back to the
        ``id`` field. Matched records are patched when a field differs and
        missing ones are created. A record that carries an ``id`` field but
        matches no row is deleted. Records without one were never written by
        this service (hand-entered rows the import skipped) and are kept.

        Returns:
            Counts of created, updated and deleted Airtable records
        """
        context = self._context(context)
        airtable_records = await self.client.list_records(self.table)
        by_record_id = {r.id: r for r in airtable_records}
        by_row_id: Dict[Any, Record] = {}
        for r in airtable_records:
            row_id = r.fields.get("id")
            if row_id is not None:
                by_row_id.setdefault(row_id, r)

        matched: set = set()
        to_update: List[Record] = []
        to_create: List[T] = []
        create_fields: List[Dict[str, Any]] = []

        for record in records:
            existing = by_record_id.get(record.airtable_record_id) or by_row_id.get(record.id)
            if existing is None or existing.id in matched:
                to_create.append(record)
                create_fields.append(record.update_airtable_record(None, **context))
                continue

            matched.add(existing.id)
            fields = record.update_airtable_record(existing.fields, **context)
            if fields_differ(fields, existing.fields):
                to_update.append(Record(id=existing.id, fields=fields))

            if record.airtable_record_id != existing.id:
                record.airtable_record_id = existing.id
                self.service.update(record)

        if to_update:
            await self.client.update_records(self.table, to_update)

        if create_fields:
            created = await self.client.create_records(self.table, create_fields)
            for record, airtable_record in zip(to_create, created):
                record.airtable_record_id = airtable_record.id
                self.service.update(record)

        orphans = [r.id for r in airtable_records if r.id not in matched and r.fields.get("id") is not None]
        if orphans:
            await self.client.delete_records(self.table, orphans)

        counts = {"created": len(to_create), "updated": len(to_update), "deleted": len(orphans)}
        logger.info(f"Airtable {self.table}: {counts}")
        return counts
