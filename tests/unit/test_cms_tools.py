"""Unit tests for Medicare coverage lookups."""

import pytest

from icd_explorer import cms_tools
from icd_explorer.cms_tools import (
    clean_title,
    extract_condition_for_coverage,
    get_coverage_by_icd10,
    get_ncd_details,
    search_coverage,
)

NCD_REPORT = "reports/national-coverage-ncd"
LCD_REPORT = "reports/local-coverage-final-lcds"
NCD_DETAIL = "api.coverage.cms.gov/v1/data/ncd"
ICD10_URL = "clinicaltables.nlm.nih.gov/api/icd10cm"

NCDS = {
    "data": [
        {
            "document_id": 40,
            "document_version": 3,
            "document_display_id": "40.2",
            "title": "Home Blood Glucose Monitors",
            "chapter": "40",
            "last_updated": "2024-01-02",
            "url": "/view/ncd.aspx?ncdid=40",
        },
        {
            "document_id": 98,
            "document_version": 1,
            "document_display_id": "280.1",
            "title": "Diabetes Outpatient Self-Management Training",
            "chapter": "180",
            "last_updated": "2023-05-01",
            "url": "https://www.cms.gov/medicare-coverage-database/view/ncd.aspx?ncdid=98",
        },
        {"document_id": 7, "title": "RETIRED Diabetes Screening", "url": "/view/ncd.aspx?ncdid=7"},
        {"document_id": 12, "title": "Cochlear Implantation", "url": "/view/ncd.aspx?ncdid=12"},
    ]
}

LCDS = {
    "data": [
        {"document_id": 33822, "title": "Glucose Monitors &amp; Supplies", "last_updated": "2024-03-01", "url": "/view/lcd.aspx?lcdid=33822"},
        {"document_id": 34000, "title": "Diabetic   Shoe Inserts", "url": "/view/lcd.aspx?lcdid=34000"},
    ]
}


@pytest.fixture
def cms_reports(mock_api):
    mock_api.add(NCD_REPORT, NCDS)
    mock_api.add(LCD_REPORT, LCDS)
    return mock_api


class TestHelpers:
    def test_clean_title(self):
        assert clean_title("Knee &amp; Hip\\u0027s   Care") == "Knee & Hip's Care"

    def test_extract_condition(self):
        assert extract_condition_for_coverage("Type 2 diabetes mellitus without complications") == "diabetes mellitus"
        assert extract_condition_for_coverage("Essential (primary) hypertension") == "hypertension"


class TestSearchCoverage:
    @pytest.mark.asyncio
    async def test_filters_and_sorts(self, cms_reports):
        result = await search_coverage("diabetes")
        titles = [ncd["title"] for ncd in result["ncds"]]
        assert titles == ["Diabetes Outpatient Self-Management Training"]
        assert result["lcds"] == []
        assert result["totalResults"] == 1
        assert result["searchTerm"] == "diabetes"

    @pytest.mark.asyncio
    async def test_any_term_matches(self, cms_reports):
        result = await search_coverage("glucose diabetic")
        ncd = result["ncds"][0]
        assert ncd["id"] == 40
        assert ncd["displayId"] == "40.2"
        assert ncd["type"] == "ncd"
        assert ncd["url"] == "https://www.cms.gov/medicare-coverage-database/view/ncd.aspx?ncdid=40"
        assert [lcd["title"] for lcd in result["lcds"]] == ["Diabetic Shoe Inserts", "Glucose Monitors & Supplies"]
        assert result["lcds"][0]["contractor"] == ""
        assert result["totalResults"] == 3

    @pytest.mark.asyncio
    async def test_type_filter(self, cms_reports):
        result = await search_coverage("glucose", "NCD")
        assert len(result["ncds"]) == 1
        assert result["lcds"] == []
        assert cms_reports.calls(LCD_REPORT) == []

    @pytest.mark.asyncio
    async def test_reports_cached(self, cms_reports):
        await search_coverage("glucose")
        await search_coverage("implantation")
        assert len(cms_reports.calls(NCD_REPORT)) == 1

    @pytest.mark.asyncio
    async def test_failed_report_not_cached(self, mock_api):
        mock_api.add(NCD_REPORT, {}, status_code=500)
        mock_api.add(LCD_REPORT, LCDS)
        assert (await search_coverage("glucose"))["ncds"] == []
        await search_coverage("glucose")
        assert len(mock_api.calls(NCD_REPORT)) == 2


class TestNcdDetails:
    @pytest.mark.asyncio
    async def test_detail_defaults_version(self, mock_api):
        mock_api.add(NCD_DETAIL, {"data": [{"title": "Home Blood Glucose Monitors"}]})
        detail = await get_ncd_details(40)
        assert detail["data"][0]["title"] == "Home Blood Glucose Monitors"
        params = mock_api.calls(NCD_DETAIL)[0].url.params
        assert params["ncdid"] == "40"
        assert params["ncdver"] == "1"

    @pytest.mark.asyncio
    async def test_detail_failure(self, mock_api):
        mock_api.add(NCD_DETAIL, {}, status_code=404)
        assert await get_ncd_details(40, 2) is None

    @pytest.mark.asyncio
    async def test_detail_tool(self, mock_api):
        mock_api.add(NCD_DETAIL, {"data": []})
        assert await cms_tools.HANDLERS["get_ncd_details"]({"ncd_id": "40"}) == {"detail": {"data": []}}


class TestCoverageByIcd10:
    @pytest.mark.asyncio
    async def test_searches_by_description(self, cms_reports):
        cms_reports.add(ICD10_URL, [1, ["E11.9"], None, [["E11.9", "Type 2 diabetes mellitus without complications"]]])
        result = await get_coverage_by_icd10("e11.9")
        assert result["found"] is True
        assert result["code"] == "E11.9"
        assert result["searchTerm"] == "diabetes mellitus"
        assert result["totalResults"] == 1

    @pytest.mark.asyncio
    async def test_unknown_code(self, mock_api):
        mock_api.add(ICD10_URL, [0, [], None, []])
        result = await get_coverage_by_icd10("Z99.99")
        assert result["found"] is False
