"""Unit tests for ClinicalTrials.gov lookups."""

import httpx
import pytest

from icd_explorer import clinical_trials_tools
from icd_explorer.clinical_trials_tools import (
    get_trial_details,
    get_trial_results,
    normalize_status,
    search_clinical_trials,
    search_trials_for_condition,
    truncate_text,
)

CT_STUDIES = "clinicaltrials.gov/api/v2/studies"


def study(nct_id: str = "NCT05000001", **overrides) -> dict:
    protocol = {
        "identificationModule": {"nctId": nct_id, "briefTitle": "Semaglutide in Adults With Obesity"},
        "statusModule": {"overallStatus": "RECRUITING", "startDateStruct": {"date": "2025-02"}},
        "descriptionModule": {"briefSummary": "A   study\n of weekly semaglutide."},
        "eligibilityModule": {"eligibilityCriteria": "Inclusion Criteria:\n* BMI >= 30"},
        "sponsorCollaboratorsModule": {"leadSponsor": {"name": "Novo Nordisk A/S"}},
        "contactsLocationsModule": {
            "locations": [{"facility": f"Site {i}", "city": "Boston", "country": "United States"} for i in range(5)]
        },
    }
    protocol.update(overrides)
    return {"protocolSection": protocol}


class TestHelpers:
    def test_normalize_status(self):
        assert normalize_status("Recruiting") == "RECRUITING"
        assert normalize_status("Active, not recruiting") == "ACTIVE_NOT_RECRUITING"
        assert normalize_status("WITHDRAWN") == "OTHER"
        assert normalize_status(None) == "OTHER"

    def test_truncate_collapses_whitespace(self):
        assert truncate_text("a   b\n c", 10) == "a b c"


class TestConditionTrials:
    @pytest.mark.asyncio
    async def test_parses_trials(self, mock_api):
        mock_api.add(CT_STUDIES, {"studies": [study(), {"protocolSection": {}}]})
        trials = await search_trials_for_condition("Obesity, unspecified")
        assert len(trials) == 1
        trial = trials[0]
        assert trial["nctId"] == "NCT05000001"
        assert trial["summary"] == "A study of weekly semaglutide."
        assert trial["sponsor"] == "Novo Nordisk A/S"
        assert len(trial["locations"]) == 3
        assert trial["locations"][0]["state"] == ""
        assert trial["url"] == "https://clinicaltrials.gov/study/NCT05000001"

        params = mock_api.calls(CT_STUDIES)[0].url.params
        assert params["query.cond"] == "obesity"
        assert params["filter.overallStatus"] == "RECRUITING"
        assert params["pageSize"] == "5"

    @pytest.mark.asyncio
    async def test_all_statuses(self, mock_api):
        mock_api.add(CT_STUDIES, {"studies": []})
        assert await search_trials_for_condition("asthma", recruiting_only=False) == []
        assert "filter.overallStatus" not in mock_api.calls(CT_STUDIES)[0].url.params

    @pytest.mark.asyncio
    async def test_bad_request_is_empty(self, mock_api):
        mock_api.add(CT_STUDIES, {"message": "bad query"}, status_code=400)
        assert await search_trials_for_condition("asthma") == []

    @pytest.mark.asyncio
    async def test_server_error_propagates(self, mock_api):
        mock_api.add(CT_STUDIES, {}, status_code=503)
        with pytest.raises(httpx.HTTPStatusError):
            await search_trials_for_condition("asthma")

    @pytest.mark.asyncio
    async def test_demo_mode(self, mock_api, monkeypatch):
        monkeypatch.setattr(clinical_trials_tools, "DEMO_MODE", True)
        trials = await search_trials_for_condition("asthma")
        assert trials[0]["title"].startswith("[DEMO]")
        assert mock_api.requests == []


class TestTrialLookups:
    @pytest.mark.asyncio
    async def test_search_clinical_trials(self, mock_api):
        mock_api.add(CT_STUDIES, {"totalCount": 42, "studies": [study()]})
        result = await search_clinical_trials(condition="obesity", status=["RECRUITING", "NOT_YET_RECRUITING"], location_state="Massachusetts")
        assert result["total_count"] == 42
        assert result["trials"][0]["nct_id"] == "NCT05000001"
        params = mock_api.calls(CT_STUDIES)[0].url.params
        assert params["filter.overallStatus"] == "RECRUITING,NOT_YET_RECRUITING"
        assert params["query.locn"] == "Massachusetts, United States"

    @pytest.mark.asyncio
    async def test_details_not_found(self, mock_api):
        mock_api.add(CT_STUDIES, {}, status_code=404)
        assert await get_trial_details("nct09999999") == {"found": False, "nct_id": "NCT09999999"}

    @pytest.mark.asyncio
    async def test_results_not_posted(self, mock_api):
        mock_api.add(CT_STUDIES, study())
        result = await get_trial_results("NCT05000001")
        assert result["has_results"] is False
        assert result["status"] == "RECRUITING"

    @pytest.mark.asyncio
    async def test_condition_tool(self, mock_api):
        mock_api.add(CT_STUDIES, {"studies": [study()]})
        result = await clinical_trials_tools.HANDLERS["search_trials_for_condition"]({"condition": "obesity"})
        assert result["count"] == 1
        assert result["condition"] == "obesity"
