"""
Finance sync: software vendors and card transactions.

Vendors are maintained by hand in the finance base and read back here so the
derived monthly cost can be computed. Transactions come from Ramp and, when
the company has connected it, QuickBooks.
"""
from typing import Dict, List, Optional

import httpx
from sqlmodel import Session

from cio.clients.quickbooks import Purchase
from cio.clients.ramp import Transaction, User
from cio.core.exceptions import APITokenNotFoundError
from cio.core.logging_config import log_info
from cio.core.time_utils import parse_datetime, utc_now
from cio.models.company import Company
from cio.models.finance import CreditCardTransaction, SoftwareVendor
from cio.services.api_tokens import authenticate_quickbooks, authenticate_ramp
from cio.services.records import AirtableSync, RecordService, record_from_airtable
from cio.utils.text import full_name

RAMP_CARD_VENDOR = "Ramp"
QUICKBOOKS_CARD_VENDOR = "QuickBooks"


def transaction_from_ramp(transaction: Transaction, users: Dict[str, User], company: Company) -> CreditCardTransaction:
    holder = transaction.card_holder
    user = users.get(holder.user_id)
    return CreditCardTransaction(
        transaction_id=transaction.id,
        card_vendor=RAMP_CARD_VENDOR,
        amount=transaction.amount,
        employee_name=full_name(holder.first_name, holder.last_name),
        employee_email=user.email if user else "",
        card_id=transaction.card_id,
        merchant_id=transaction.merchant_id or "",
        merchant_name=transaction.merchant_name,
        category_id=transaction.sk_category_id or 0,
        category_name=transaction.sk_category_name,
        state=transaction.state,
        time=parse_datetime(transaction.user_transaction_time) or utc_now(),
        receipts=list(transaction.receipts),
        cio_company_id=company.id,
    )


def transaction_from_quickbooks(purchase: Purchase, company: Company) -> CreditCardTransaction:
    time = utc_now()
    if purchase.txn_date:
        time = parse_datetime(f"{purchase.txn_date}T00:00:00Z") or time
    return CreditCardTransaction(
        transaction_id=f"quickbooks-{purchase.id}",
        card_vendor=QUICKBOOKS_CARD_VENDOR,
        amount=purchase.total_amount,
        card_id=str(purchase.account_ref.get("value", "")),
        merchant_id=str(purchase.entity_ref.get("value", "")),
        merchant_name=purchase.vendor_name,
        category_name=purchase.payment_type,
        state="cleared",
        memo=purchase.private_note,
        time=time,
        cio_company_id=company.id,
    )


async def refresh_ramp_transactions(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> List[CreditCardTransaction]:
    try:
        ramp = await authenticate_ramp(session, company, http_client=http_client)
    except APITokenNotFoundError:
        log_info("No Ramp token, skipping transactions", company=company.name)
        return []

    users = {u.id: u for u in await ramp.list_users()}
    service = RecordService(CreditCardTransaction, session)
    return [
        service.upsert(transaction_from_ramp(t, users, company))
        for t in await ramp.list_transactions()
    ]


async def refresh_quickbooks_purchases(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> List[CreditCardTransaction]:
    try:
        quickbooks = await authenticate_quickbooks(session, company, http_client=http_client)
    except APITokenNotFoundError:
        # This company does not use QuickBooks
        return []

    service = RecordService(CreditCardTransaction, session)
    return [
        service.upsert(transaction_from_quickbooks(p, company))
        for p in await quickbooks.list_purchases()
    ]


async def refresh_software_vendors(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> List[SoftwareVendor]:
    """Read the Vendors table into the database with computed monthly cost."""
    service = RecordService(SoftwareVendor, session)
    sync = AirtableSync.for_company(service, company, http_client=http_client)

    vendors: List[SoftwareVendor] = []
    for record in await sync.client.list_records(SoftwareVendor.__airtable_table__):
        name = str(record.fields.get("name") or "").strip()
        if not name:
            continue

        vendor = record_from_airtable(SoftwareVendor, record.fields, name=name, cio_company_id=company.id)
        vendor.airtable_record_id = record.id
        vendor.compute_total_cost()
        vendors.append(service.upsert(vendor))

    return vendors


async def refresh_all_finance(
    session: Session,
    company: Company,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Dict[str, int]]:
    """Sync vendors and transactions, then mirror both to the finance base."""
    vendor_service = RecordService(SoftwareVendor, session)
    transaction_service = RecordService(CreditCardTransaction, session)

    await refresh_software_vendors(session, company, http_client=http_client)
    ramp = await refresh_ramp_transactions(session, company, http_client=http_client)
    quickbooks = await refresh_quickbooks_purchases(session, company, http_client=http_client)
    log_info(
        f"Imported {len(ramp)} Ramp and {len(quickbooks)} QuickBooks transactions",
        company=company.name,
    )

    vendors = vendor_service.list_for_company(company.id)
    vendor_sync = AirtableSync.for_company(vendor_service, company, http_client=http_client)
    vendor_counts = await vendor_sync.update_airtable(vendors)

    vendor_record_ids = {v.name.lower(): v.airtable_record_id for v in vendors if v.airtable_record_id}
    transaction_sync = AirtableSync.for_company(transaction_service, company, http_client=http_client)
    transaction_counts = await transaction_sync.update_airtable(
        transaction_service.list_for_company(company.id),
        vendor_record_ids=vendor_record_ids,
    )

    return {"vendors": vendor_counts, "transactions": transaction_counts}
