"""Unit tests for ICD-10-PCS inpatient procedure search."""

import pytest

from icd_explorer import icd10pcs_tools
from icd_explorer.icd10pcs_tools import categorize_icd10pcs_code, lookup_icd10pcs_code, search_icd10pcs

ICD10PCS_URL = "clinicaltables.nlm.nih.gov/api/icd10pcs"

APPENDECTOMY_PAYLOAD = [
    2,
    ["0DTJ4ZZ", "0DTJ0ZZ "],
    None,
    [
        ["0DTJ4ZZ", "Resection of Appendix, Percutaneous Endoscopic Approach"],
        ["0DTJ0ZZ"],
    ],
]


class TestCategorize:
    @pytest.mark.parametrize(
        "code,category",
        [("0DTJ4ZZ", "therapeutic"), ("BW28ZZZ", "diagnostic"), ("c030kzz", "diagnostic"), ("4A023N6", "monitoring"),
         ("7W00X0Z", "other"), ("", "other")],
    )
    def test_sections(self, code, category):
        assert categorize_icd10pcs_code(code) == category


class TestSearch:
    @pytest.mark.asyncio
    async def test_parses_rows(self, mock_api):
        mock_api.add(ICD10PCS_URL, APPENDECTOMY_PAYLOAD)
        results = await search_icd10pcs("appendectomy")
        assert [r["code"] for r in results] == ["0DTJ4ZZ", "0DTJ0ZZ"]
        first, second = results
        assert first["description"] == "Resection of Appendix, Percutaneous Endoscopic Approach"
        assert first["codeSystem"] == "ICD10PCS"
        assert first["setting"] == "inpatient"
        assert first["source"] == "clinicaltables"
        assert first["category"] == "therapeutic"
        # Display pair without a description falls back to the code
        assert second["description"] == "0DTJ0ZZ"

        params = mock_api.calls(ICD10PCS_URL)[0].url.params
        assert params["terms"] == "appendectomy"
        assert params["maxList"] == "50"

    @pytest.mark.asyncio
    async def test_empty_hits_cached(self, mock_api):
        mock_api.add(ICD10PCS_URL, [0, [], None, []])
        assert await search_icd10pcs("Nothing") == []
        assert await search_icd10pcs("nothing ") == []
        assert len(mock_api.calls(ICD10PCS_URL)) == 1

    @pytest.mark.asyncio
    async def test_failure_is_empty_and_uncached(self, mock_api):
        mock_api.add(ICD10PCS_URL, "<html>Bad Gateway</html>")
        assert await search_icd10pcs("appendectomy") == []
        await search_icd10pcs("appendectomy")
        assert len(mock_api.calls(ICD10PCS_URL)) == 2

    @pytest.mark.asyncio
    async def test_blank_query(self, mock_api):
        assert await search_icd10pcs(" ") == []
        assert mock_api.requests == []


class TestLookup:
    @pytest.mark.asyncio
    async def test_exact_match(self, mock_api):
        mock_api.add(ICD10PCS_URL, APPENDECTOMY_PAYLOAD)
        assert (await lookup_icd10pcs_code("0dtj0zz"))["code"] == "0DTJ0ZZ"
        assert await lookup_icd10pcs_code("0DTJ7ZZ") is None
        assert mock_api.calls(ICD10PCS_URL)[0].url.params["maxList"] == "5"

    @pytest.mark.asyncio
    async def test_tools(self, mock_api):
        mock_api.add(ICD10PCS_URL, APPENDECTOMY_PAYLOAD)
        search = await icd10pcs_tools.HANDLERS["search_icd10pcs"]({"query": "appendix", "max_results": 10})
        assert search["query"] == "appendix"
        assert search["count"] == 2
        found = await icd10pcs_tools.HANDLERS["lookup_icd10pcs"]({"code": "0DTJ4ZZ"})
        assert found["found"] is True
        assert found["code"] == "0DTJ4ZZ"
        missing = await icd10pcs_tools.HANDLERS["lookup_icd10pcs"]({"code": " 0dtj8zz "})
        assert missing == {"found": False, "code": "0DTJ8ZZ"}
