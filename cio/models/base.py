"""
Shared model bases.

``AirtableRecord`` is the base for every table that is mirrored into an
Airtable base. Subclasses describe the mirror with class attributes:

    __airtable_base__     which company base the table lives in
                          (cio, customer_leads, finance, travel, misc, hiring)
    __airtable_table__    the Airtable table name
    __match_on__          fields that identify a row for upserts
    __airtable_exclude__  fields that are never sent to Airtable

``update_airtable_record`` is the hook subclasses override to adjust the
outgoing Airtable fields (link fields, truncation, derived values).
"""
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

AIRTABLE_BASES = ("cio", "customer_leads", "finance", "travel", "misc", "hiring")


def JSONType():
    return JSONB().with_variant(JSON, "sqlite")


class BaseModel(SQLModel):
    """Integer primary key shared by all tables."""

    id: Optional[int] = Field(default=None, primary_key=True)


class AirtableRecord(BaseModel):
    """A database row mirrored into an Airtable table."""

    __airtable_base__: ClassVar[str] = "cio"
    __airtable_table__: ClassVar[str] = ""
    __match_on__: ClassVar[Tuple[str, ...]] = ()
    __airtable_exclude__: ClassVar[FrozenSet[str]] = frozenset()

    airtable_record_id: str = Field(default="", max_length=255, index=True)

    def match_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__match_on__}

    def airtable_fields(self) -> Dict[str, Any]:
        """JSON-safe field dict for Airtable, always carrying ``id``."""
        excluded = set(self.__airtable_exclude__) | {"airtable_record_id"}
        fields = self.model_dump(mode="json", exclude=excluded)
        fields["id"] = self.id
        return fields

    def update_airtable_record(self, existing: Optional[Dict[str, Any]] = None, **context: Any) -> Dict[str, Any]:
        """
        Return the fields to send to Airtable.

        Args:
            existing: Fields of the matching Airtable record, if there is one
            context: Extra objects the sync passes along (``company``)
        """
        return self.airtable_fields()

    def copy_from(self, other: "AirtableRecord") -> None:
        """Copy column values from ``other``, keeping identity and a known record id."""
        for name in type(self).model_fields:
            if name == "id":
                continue
            if name == "airtable_record_id" and self.airtable_record_id and not other.airtable_record_id:
                continue
            setattr(self, name, getattr(other, name))


class CompanyScoped(SQLModel):
    cio_company_id: int = Field(foreign_key="companies.id", index=True, nullable=False)
