"""Unit tests for HousingAPIClient.

Upstream calls go through httpx.MockTransport -- no network access.
"""

from __future__ import annotations

import json

import httpx
import pytest

from src.enquiry_crm.config import Settings
from src.enquiry_crm.housing.client import HousingAPIClient, extract_leads
from src.enquiry_crm.housing.exceptions import (
    ConfigurationError,
    UpstreamProtocolError,
    UpstreamRequestFailed,
)
from src.enquiry_crm.housing.schemas import RawUpstreamLead
from src.enquiry_crm.housing.signing import sign

FIXED_NOW = 1_700_003_600


# ── Envelope Handling ─────────────────────────────────────────────────────


class TestExtractLeads:
    def test_bare_array(self):
        assert extract_leads([{"lead_name": "A"}]) == [{"lead_name": "A"}]

    def test_envelope(self):
        assert extract_leads({"status": 200, "data": [{"lead_name": "A"}]}) == [{"lead_name": "A"}]

    def test_envelope_without_data(self):
        assert extract_leads({"status": 200}) == []

    def test_envelope_with_non_list_data(self):
        assert extract_leads({"data": {"lead_name": "A"}}) == []

    def test_scalar(self):
        assert extract_leads("nope") == []


# ── Construction ──────────────────────────────────────────────────────────


class TestConstruction:
    def test_missing_profile_id(self):
        with pytest.raises(ConfigurationError):
            HousingAPIClient(profile_id="", encryption_key="key")

    def test_missing_encryption_key(self):
        with pytest.raises(ConfigurationError):
            HousingAPIClient(profile_id="profile", encryption_key="")

    def test_from_settings(self):
        settings = Settings(
            HOUSING_PROFILE_ID="profile",
            HOUSING_ENCRYPTION_KEY="key",
            HOUSING_API_URL="https://leads.example.test/x",
        )
        client = HousingAPIClient.from_settings(settings)
        assert isinstance(client, HousingAPIClient)

    def test_from_settings_unconfigured(self):
        with pytest.raises(ConfigurationError):
            HousingAPIClient.from_settings(
                Settings(HOUSING_PROFILE_ID="", HOUSING_ENCRYPTION_KEY="")
            )


# ── fetch_leads ───────────────────────────────────────────────────────────


class TestFetchLeads:
    async def test_signed_query_parameters(self, make_client):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=[])

        client = make_client(handler)
        await client.fetch_leads("1699990000", "1700000000")

        params = captured[0].url.params
        assert params["start_date"] == "1699990000"
        assert params["end_date"] == "1700000000"
        assert params["current_time"] == str(FIXED_NOW)
        assert params["hash"] == sign("test-encryption-key", str(FIXED_NOW))
        assert params["id"] == "profile-1234"
        assert captured[0].method == "GET"
        assert captured[0].headers["accept"] == "application/json"

    async def test_bare_array_response(self, make_client, raw_lead):
        client = make_client(lambda request: httpx.Response(200, json=[raw_lead()]))
        leads = await client.fetch_leads("0", "1")
        assert len(leads) == 1
        assert isinstance(leads[0], RawUpstreamLead)
        assert leads[0].lead_name == "Asha Patel"

    async def test_envelope_response(self, make_client, raw_lead):
        body = {"status": 200, "data": [raw_lead(), raw_lead(lead_name="Ravi")]}
        client = make_client(lambda request: httpx.Response(200, json=body))
        leads = await client.fetch_leads("0", "1")
        assert [lead.lead_name for lead in leads] == ["Asha Patel", "Ravi"]

    async def test_envelope_string_status(self, make_client, raw_lead):
        body = {"status": "200", "data": [raw_lead()]}
        client = make_client(lambda request: httpx.Response(200, json=body))
        assert len(await client.fetch_leads("0", "1")) == 1

    async def test_envelope_float_status(self, make_client, raw_lead):
        body = {"status": 200.0, "data": [raw_lead()]}
        client = make_client(lambda request: httpx.Response(200, json=body))
        assert len(await client.fetch_leads("0", "1")) == 1

    async def test_raw_records_keep_unmodelled_fields(self, make_client, raw_lead):
        body = [raw_lead(lead_id=99, extra="x"), "not-a-lead"]
        client = make_client(lambda request: httpx.Response(200, json=body))

        records = await client.fetch_raw_records("0", "1")

        assert len(records) == 1
        assert records[0]["lead_id"] == 99
        assert records[0]["extra"] == "x"

    async def test_envelope_without_data_is_empty(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"status": 200}))
        assert await client.fetch_leads("0", "1") == []

    async def test_numeric_fields_coerced_to_strings(self, make_client, raw_lead):
        body = [raw_lead(lead_date=1700000000, lead_phone=9876543210, min_area=1200)]
        client = make_client(lambda request: httpx.Response(200, json=body))
        lead = (await client.fetch_leads("0", "1"))[0]
        assert lead.lead_date == "1700000000"
        assert lead.lead_phone == "9876543210"
        assert lead.min_area == "1200"

    async def test_non_object_items_dropped(self, make_client, raw_lead):
        body = [raw_lead(), "garbage", 42]
        client = make_client(lambda request: httpx.Response(200, json=body))
        assert len(await client.fetch_leads("0", "1")) == 1

    async def test_invalid_json(self, make_client):
        client = make_client(lambda request: httpx.Response(200, text="<html>" + "x" * 300))
        with pytest.raises(UpstreamProtocolError) as exc_info:
            await client.fetch_leads("0", "1")
        assert len(exc_info.value.snippet) == 100
        assert exc_info.value.snippet.startswith("<html>")

    async def test_http_error_uses_envelope_message(self, make_client):
        client = make_client(
            lambda request: httpx.Response(403, json={"message": "Invalid hash"})
        )
        with pytest.raises(UpstreamRequestFailed, match="Invalid hash") as exc_info:
            await client.fetch_leads("0", "1")
        assert exc_info.value.status_code == 403

    async def test_http_error_without_message(self, make_client):
        client = make_client(lambda request: httpx.Response(502, json=[]))
        with pytest.raises(UpstreamRequestFailed, match="API request failed with status 502"):
            await client.fetch_leads("0", "1")

    async def test_envelope_status_error(self, make_client):
        body = {"status": 401, "message": "Unauthorized profile", "data": []}
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(UpstreamRequestFailed, match="Unauthorized profile"):
            await client.fetch_leads("0", "1")

    async def test_envelope_status_error_without_message(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"status": "500"}))
        with pytest.raises(UpstreamRequestFailed, match="API returned non-success status"):
            await client.fetch_leads("0", "1")

    async def test_transport_error(self, make_client):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(UpstreamRequestFailed, match="connection refused"):
            await client.fetch_leads("0", "1")


# ── process_lead ──────────────────────────────────────────────────────────


class TestProcessLead:
    def _client(self) -> HousingAPIClient:
        return HousingAPIClient(profile_id="p", encryption_key="k")

    def test_minimal_lead(self):
        raw = RawUpstreamLead(
            lead_name="Asha",
            lead_phone="9876543210",
            lead_date="1700000000",
            project_name="Greenview",
        )
        lead = self._client().process_lead(raw)

        assert lead.client_name == "Asha"
        assert lead.mobile == "9876543210"
        assert lead.enquiry_for == "Greenview"
        assert lead.configuration == "Not specified"
        assert lead.created_date == "2023-11-14T22:13:20.000Z"
        assert lead.area == "Not specified"
        assert lead.budget == "Not specified"
        assert lead.property_type == "Residential"
        assert lead.enquiry_source == "Housing"
        assert lead.enquiry_progress == "New"
        assert lead.assigned_to == "Unassigned"
        assert lead.nfd == ""
        assert lead.remarks == "Lead from Housing.com - Project: Greenview, Locality: N/A"

    def test_full_lead(self, raw_lead):
        raw = RawUpstreamLead.model_validate(
            raw_lead(
                min_area="1200",
                max_area="1500",
                property_field="3 BHK",
                apartment_names="Tower A",
                category_type="Apartment",
                service_type="buy",
            )
        )
        lead = self._client().process_lead(raw)

        assert lead.configuration == "1200-1500 sqft, 3 BHK, Tower A"
        assert lead.budget == "₹50L - ₹75L"
        assert lead.area == "Bopal"
        assert lead.property_type == "Apartment"
        assert lead.email == "asha@example.com"
        assert lead.mobile == "98765 43210"

    def test_property_type_falls_back_to_service_type(self):
        lead = self._client().process_lead(RawUpstreamLead(service_type="rent"))
        assert lead.property_type == "rent"

    def test_missing_name_stays_empty(self):
        lead = self._client().process_lead(RawUpstreamLead(lead_name="  ", lead_phone="1"))
        assert lead.client_name == ""

    def test_empty_record_never_raises(self):
        lead = self._client().process_lead(RawUpstreamLead())
        assert lead.mobile == ""
        assert lead.enquiry_for == "General Inquiry"
        assert lead.created_date.endswith("Z")

    def test_camel_case_serialization(self):
        lead = self._client().process_lead(RawUpstreamLead(lead_name="Asha"))
        payload = json.loads(lead.model_dump_json(by_alias=True))
        assert payload["clientName"] == "Asha"
        assert "enquiryFor" in payload


async def test_fetch_latest_leads_window(make_client, raw_lead):
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json=[raw_lead()])

    client = make_client(handler)
    leads = await client.fetch_latest_leads(hours_back=2)

    params = captured[0].url.params
    assert params["end_date"] == str(FIXED_NOW)
    assert params["start_date"] == str(FIXED_NOW - 7200)
    assert leads[0].client_name == "Asha Patel"
    assert leads[0].enquiry_for == "Greenview"
