"""
Unit tests for Checkr background checks on applicants.
"""
import json

import httpx
import pytest

from cio.clients.checkr import Candidate, WebhookEvent
from cio.models.applicant import Applicant, ApplicantStatus
from cio.services.applicants import find_onboarding_applicant, handle_checkr_webhook, refresh_background_checks


def _applicant(session, company, **fields) -> Applicant:
    defaults = {
        "name": "Jess Frazelle",
        "email": "jess@example.com",
        "status": ApplicantStatus.ONBOARDING.value,
        "cio_company_id": company.id,
    }
    defaults.update(fields)
    applicant = Applicant(**defaults)
    session.add(applicant)
    session.commit()
    session.refresh(applicant)
    return applicant


def _event(event_type="report.completed", **report) -> WebhookEvent:
    defaults = {"id": "rpt1", "status": "clear", "package": "premium_criminal", "candidate_id": "cand1"}
    defaults.update(report)
    return WebhookEvent.model_validate({"id": "evt1", "type": event_type, "data": {"object": defaults}})


class TestFindOnboardingApplicant:
    def test_matches_email(self, session, company):
        applicant = _applicant(session, company)
        candidate = Candidate(email="jess@example.com", first_name="J", last_name="F")
        assert find_onboarding_applicant(session, company, candidate).id == applicant.id

    def test_matches_full_name(self, session, company):
        applicant = _applicant(session, company)
        candidate = Candidate(email="other@example.com", first_name="Jess", last_name="Frazelle")
        assert find_onboarding_applicant(session, company, candidate).id == applicant.id

    def test_ignores_applicants_not_onboarding(self, session, company):
        _applicant(session, company, status=ApplicantStatus.INTERVIEWING.value)
        candidate = Candidate(email="jess@example.com")
        assert find_onboarding_applicant(session, company, candidate) is None


def test_apply_background_check_by_package(company):
    applicant = Applicant(email="a@example.com", cio_company_id=company.id)

    assert applicant.apply_background_check("tasker_premium_criminal_motor_vehicle", "pending")
    assert applicant.criminal_background_check_status == "pending"
    assert applicant.motor_vehicle_background_check_status == "pending"
    assert not applicant.apply_background_check("premium_criminal", "pending")


class TestHandleCheckrWebhook:
    @pytest.mark.asyncio
    async def test_report_event_updates_applicant_and_airtable(self, session, company, mock_http):
        applicant = _applicant(session, company, airtable_record_id="recApp")

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.checkr.com":
                assert request.url.path == "/v1/candidates/cand1"
                return httpx.Response(200, json={"id": "cand1", "email": "jess@example.com"})
            if request.method == "GET":
                return httpx.Response(200, json={"id": "recApp", "fields": {"email": "jess@example.com"}})
            assert request.method == "PATCH"
            return httpx.Response(200, json=json.loads(request.content))

        http_client, recorder = mock_http(handler)

        updated = await handle_checkr_webhook(session, company, _event(), http_client=http_client)

        assert updated.id == applicant.id
        assert updated.criminal_background_check_status == "clear"
        patch = json.loads(recorder.requests[-1].content)
        assert patch["records"][0]["id"] == "recApp"
        assert patch["records"][0]["fields"]["criminal_background_check_status"] == "clear"
        assert recorder.requests[1].url.path == "/v0/appHiring/Applicants/recApp"

    @pytest.mark.asyncio
    async def test_non_report_events_are_ignored(self, session, company, mock_http):
        http_client, recorder = mock_http(lambda request: httpx.Response(500))

        assert await handle_checkr_webhook(session, company, _event("candidate.created"), http_client=http_client) is None
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_unchanged_status_skips_airtable(self, session, company, mock_http):
        _applicant(session, company, criminal_background_check_status="clear", airtable_record_id="recApp")
        http_client, recorder = mock_http(
            lambda request: httpx.Response(200, json={"id": "cand1", "email": "jess@example.com"})
        )

        await handle_checkr_webhook(session, company, _event(), http_client=http_client)

        assert [r.url.host for r in recorder.requests] == ["api.checkr.com"]


@pytest.mark.asyncio
async def test_refresh_keeps_applicants_without_email_in_airtable(session, company, mock_http):
    airtable_records = [
        {"id": "recJess", "fields": {"email": "jess@example.com", "name": "Jess Frazelle"}},
        {"id": "recNoEmail", "fields": {"name": "Walk-in candidate"}},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.checkr.com":
            return httpx.Response(200, json={"data": [], "next_href": None})
        assert request.url.path == "/v0/appHiring/Applicants"
        if request.method == "GET":
            return httpx.Response(200, json={"records": airtable_records})
        assert request.method == "PATCH"
        return httpx.Response(200, json=json.loads(request.content))

    http_client, recorder = mock_http(handler)

    counts = await refresh_background_checks(session, company, http_client=http_client)

    assert counts == {"created": 0, "updated": 1, "deleted": 0}
    assert not [r for r in recorder.requests if r.method == "DELETE"]
    patched = [r for r in recorder.requests if r.method == "PATCH"][0]
    assert [r["id"] for r in json.loads(patched.content)["records"]] == ["recJess"]
