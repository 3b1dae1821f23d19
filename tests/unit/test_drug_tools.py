"""Unit tests for the drug pipeline: RxNorm, OpenFDA, AI helpers, mappings, validation."""

import asyncio
import json

import httpx
import openai
import pytest

from icd_explorer import drug_mappings, drug_tools, rxnorm
from icd_explorer.drug_ai import (
    generate_drug_list,
    parse_drug_list,
    parse_relevance_scores,
    score_drug_relevance,
    strip_code_fences,
    validate_drug_list,
)
from icd_explorer.errors import ConfigurationError, RateLimitError
from icd_explorer.openfda import (
    format_drug_name,
    format_manufacturer,
    search_drugs_for_condition,
    truncate_text,
)

RXNAV_DRUGS = "rxnav.nlm.nih.gov/REST/drugs.json"
OPENFDA = "api.fda.gov/drug/label.json"

RXNORM_CONCEPTS = {
    "lisinopril": ("29046", "lisinopril 10 MG Oral Tablet [Zestril]"),
    "amlodipine": ("17767", "amlodipine 5 MG Oral Tablet [Norvasc]"),
    "losartan": ("52175", "losartan potassium 50 MG Oral Tablet"),
}


def rxnorm_handler(request: httpx.Request) -> httpx.Response:
    concept = RXNORM_CONCEPTS.get(request.url.params["name"])
    if concept is None:
        return httpx.Response(200, json={"drugGroup": {"name": None}})
    rxcui, name = concept
    tty = "SBD" if "[" in name else "SCD"
    return httpx.Response(
        200,
        json={"drugGroup": {"conceptGroup": [{"tty": tty, "conceptProperties": [{"rxcui": rxcui, "name": name}]}]}},
    )


@pytest.fixture
def no_openai_env(monkeypatch):
    monkeypatch.delenv("AZURE_OPENAI_ENDPOINT", raising=False)
    monkeypatch.delenv("AZURE_OPENAI_API_KEY", raising=False)


# ---------------------------------------------------------------------------
# RxNorm / RxClass
# ---------------------------------------------------------------------------


class TestRxNormParsing:
    def test_branded_name(self):
        name = "semaglutide 0.25 MG in 0.5 ML Pen Injector [Ozempic]"
        assert rxnorm.extract_brand_name(name, "ozempic") == "Ozempic"
        assert rxnorm.extract_generic_name(name, "ozempic") == "semaglutide"
        assert rxnorm.extract_dosage_form(name) == "Pen Injector"
        assert rxnorm.extract_strength(name) == "0.25 MG"

    def test_clinical_name_falls_back_to_title_case(self):
        assert rxnorm.extract_brand_name("metformin hydrochloride 500 MG Oral Tablet", "metformin") == "Metformin"
        assert rxnorm.to_title_case("phentermine/topiramate") == "Phentermine Topiramate"

    def test_combination_generic(self):
        name = "naltrexone / bupropion 8 MG Extended Release Oral Tablet"
        assert rxnorm.extract_generic_name(name, "contrave") == "naltrexone / bupropion"
        assert rxnorm.extract_dosage_form(name) == "Extended Release Oral Tablet"

    def test_prefers_branded_concept(self):
        data = {
            "drugGroup": {
                "conceptGroup": [
                    {"tty": "SCD", "conceptProperties": [{"rxcui": "1", "name": "lisinopril 10 MG Oral Tablet"}]},
                    {"tty": "SBD", "conceptProperties": [{"rxcui": "2", "name": "lisinopril 10 MG Oral Tablet [Zestril]"}]},
                ]
            }
        }
        assert rxnorm._parse_drugs_response(data, "lisinopril")["rxcui"] == "2"
        assert rxnorm._parse_drugs_response({"drugGroup": {}}, "x") is None


class TestRxNormLookups:
    @pytest.mark.asyncio
    async def test_search_caches_misses(self, mock_api):
        mock_api.add(RXNAV_DRUGS, rxnorm_handler)
        assert await rxnorm.search_rxnorm("unknowndrug") is None
        assert await rxnorm.search_rxnorm("UnknownDrug ") is None
        assert len(mock_api.calls(RXNAV_DRUGS)) == 1

    @pytest.mark.asyncio
    async def test_search_multiple_drops_unknown(self, mock_api):
        mock_api.add(RXNAV_DRUGS, rxnorm_handler)
        drugs = await rxnorm.search_multiple(["lisinopril", "nope", "amlodipine"])
        assert [d["brandName"] for d in drugs] == ["Zestril", "Norvasc"]

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_none(self, mock_api):
        mock_api.add(RXNAV_DRUGS, {}, status_code=500)
        assert await rxnorm.search_rxnorm("lisinopril") is None

    @pytest.mark.asyncio
    async def test_classes_sorted_by_type_priority(self, mock_api):
        mock_api.add(
            "rxclass/class/byRxcui.json",
            {
                "rxclassDrugInfoList": {
                    "rxclassDrugInfo": [
                        {"rxclassMinConceptItem": {"classId": "C09AA", "className": "ACE inhibitors, plain", "classType": "ATC"}},
                        {"rxclassMinConceptItem": {"classId": "N0000000181", "className": "ACE Inhibitors", "classType": "MOA"}},
                        {"rxclassMinConceptItem": {"classId": "N0000175562", "className": "Angiotensin Converting Enzyme Inhibitor", "classType": "EPC"}},
                        {"rxclassMinConceptItem": {"classId": "C09AA", "className": "ACE inhibitors, plain", "classType": "ATC"}},
                    ]
                }
            },
        )
        classes = await rxnorm.get_drug_classes("29046")
        assert [c["classType"] for c in classes] == ["EPC", "MOA", "ATC"]

    @pytest.mark.asyncio
    async def test_full_enrichment(self, mock_api):
        def related(request: httpx.Request) -> httpx.Response:
            if request.url.params["tty"] == "IN":
                groups = [{"tty": "IN", "conceptProperties": [{"rxcui": "29046", "name": "LISINOPRIL"}]}]
            else:
                groups = [
                    {
                        "tty": "SCD",
                        "conceptProperties": [
                            {"rxcui": "314076", "name": "lisinopril 10 MG Oral Tablet"},
                            {"rxcui": "29046", "name": "self"},
                        ],
                    }
                ]
            return httpx.Response(200, json={"relatedGroup": {"conceptGroup": groups}})

        mock_api.add("rxclass/class/byRxcui.json", {})
        mock_api.add("/rxcui/29046/related.json", related)
        enrichment = await rxnorm.get_full_drug_enrichment("29046")
        ttys = {r.url.params["tty"] for r in mock_api.calls("/rxcui/29046/related.json")}
        assert ttys == {"IN", "SBD SCD"}
        assert enrichment["classes"] == []
        assert enrichment["ingredients"] == ["Lisinopril"]
        assert enrichment["relatedDrugs"] == [
            {"rxcui": "314076", "name": "lisinopril 10 MG Oral Tablet", "dosageForm": "Tablet", "strength": "10 MG"}
        ]


# ---------------------------------------------------------------------------
# OpenFDA
# ---------------------------------------------------------------------------


class TestOpenFDA:
    def test_formatting(self):
        assert format_drug_name("METFORMIN HYDROCHLORIDE") == "Metformin Hydrochloride"
        assert format_drug_name("Glucophage") == "Glucophage"
        assert format_manufacturer("Merck Sharp & Dohme LLC") == "Merck Sharp & Dohme"
        assert format_manufacturer("Pfizer, Inc.") == "Pfizer"

    def test_truncate_at_word_boundary(self):
        assert truncate_text("short", 10) == "short"
        assert truncate_text("alpha beta gamma", 14) == "alpha beta..."
        assert truncate_text("abcdefghijklmnop", 10) == "abcdefghij..."

    @pytest.mark.asyncio
    async def test_search_builds_indication_query(self, mock_api):
        mock_api.add(
            OPENFDA,
            {
                "results": [
                    {
                        "openfda": {
                            "brand_name": ["GLUCOPHAGE"],
                            "generic_name": ["METFORMIN HYDROCHLORIDE"],
                            "manufacturer_name": ["Bristol-Myers Squibb Company"],
                        },
                        "indications_and_usage": ["Glucophage is indicated as an adjunct to diet and exercise."],
                    }
                ]
            },
        )
        drugs = await search_drugs_for_condition("Type 2 diabetes mellitus without complications", limit=5)
        assert drugs == [
            {
                "brandName": "Glucophage",
                "genericName": "Metformin Hydrochloride",
                "manufacturer": "Bristol-Myers Squibb",
                "indication": "Glucophage is indicated as an adjunct to diet and exercise.",
                "warnings": None,
            }
        ]
        url = str(mock_api.calls(OPENFDA)[0].url)
        assert "search=indications_and_usage:diabetes" in url
        assert "limit=5" in url

    @pytest.mark.asyncio
    async def test_not_found_is_empty(self, mock_api):
        mock_api.add(OPENFDA, {"error": {"code": "NOT_FOUND"}}, status_code=404)
        assert await search_drugs_for_condition("essential hypertension") == []

    @pytest.mark.asyncio
    async def test_rate_limit(self, mock_api):
        mock_api.add(OPENFDA, {}, status_code=429)
        with pytest.raises(RateLimitError):
            await search_drugs_for_condition("asthma")


# ---------------------------------------------------------------------------
# Azure OpenAI helpers
# ---------------------------------------------------------------------------


class TestDrugAIParsing:
    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'
        assert strip_code_fences("[]") == "[]"

    def test_scores_clamped_and_filtered(self):
        raw = json.dumps(
            [
                {"drugName": "Zestril (lisinopril)", "score": 12, "reasoning": "FDA-approved for hypertension"},
                {"drugName": "Aspirin", "score": -3, "reasoning": "x" * 300},
                {"drugName": "Bad", "score": "high", "reasoning": "nope"},
                {"drugName": "Half", "score": 6.6, "reasoning": "off-label"},
            ]
        )
        scores = parse_relevance_scores(raw)
        assert [s["score"] for s in scores] == [10, 0, 7]
        assert len(scores[1]["reasoning"]) == 150

    def test_scores_invalid_json(self):
        assert parse_relevance_scores("I cannot answer that") == []
        assert parse_relevance_scores('{"drugName": "x"}') == []

    def test_drug_list_formats(self):
        assert parse_drug_list('Here you go: ["metformin", "insulin", 3]') == ["metformin", "insulin"]
        assert parse_drug_list("1. Metformin (Glucophage)\n2. Sitagliptin - DPP-4 inhibitor") == ["metformin", "sitagliptin"]
        assert parse_drug_list("metformin, 'glipizide', insulin") == ["metformin", "glipizide", "insulin"]

    def test_validate_drug_list(self):
        assert validate_drug_list(["Metformin", "metformin ", "ab", "<script>", "glipizide"]) == ["metformin", "glipizide"]


class TestDrugAICalls:
    @pytest.mark.asyncio
    async def test_score_uses_deterministic_settings(self, fake_openai):
        fake_openai.reply('[{"drugName": "Zestril", "score": 10, "reasoning": "FDA-approved"}]')
        scores = await score_drug_relevance("Essential hypertension", [{"brandName": "Zestril", "genericName": "lisinopril"}], "I10")
        assert scores[0]["score"] == 10
        call = fake_openai.completions.calls[0]
        assert call["temperature"] == 0
        assert call["model"] == "test-deployment"
        assert "I10" in call["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_score_empty_list_skips_call(self, fake_openai):
        assert await score_drug_relevance("x", []) == []
        assert fake_openai.completions.calls == []

    @pytest.mark.asyncio
    async def test_generate_caps_list(self, fake_openai):
        fake_openai.reply(json.dumps([f"drug{i:02d}" for i in range(20)]))
        drugs = await generate_drug_list("zebra kuru")
        assert len(drugs) == 15

    @pytest.mark.asyncio
    async def test_unconfigured(self, no_openai_env):
        with pytest.raises(ConfigurationError):
            await score_drug_relevance("x", [{"brandName": "A", "genericName": "a"}])


# ---------------------------------------------------------------------------
# Curated mappings and AI fallback
# ---------------------------------------------------------------------------


class TestDrugMappings:
    def test_curated_substring_match(self):
        assert drug_mappings.find_curated_drugs("Morbid (severe) obesity due to excess calories") == drug_mappings.OBESITY_DRUGS
        assert "lisinopril" in drug_mappings.find_curated_drugs("Essential (primary) hypertension")
        assert drug_mappings.find_curated_drugs("zebra kuru") is None

    def test_catalog(self):
        assert drug_mappings.get_available_conditions()[0] == "obesity"
        assert drug_mappings.get_total_drug_count() > 50

    @pytest.mark.asyncio
    async def test_generated_list_cached(self, fake_openai):
        fake_openai.reply('["drug one", "drug two"]')
        assert await drug_mappings.get_drugs_for_condition("Zebra Kuru") == ["drug one", "drug two"]
        assert await drug_mappings.get_drugs_for_condition("zebra  kuru") == ["drug one", "drug two"]
        assert len(fake_openai.completions.calls) == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_generation(self, fake_openai):
        fake_openai.reply('["drug one"]')
        first, second = await asyncio.gather(
            drug_mappings.get_drugs_for_condition("zebra kuru"),
            drug_mappings.get_drugs_for_condition("zebra kuru"),
        )
        assert first == second == ["drug one"]
        assert len(fake_openai.completions.calls) == 1

    @pytest.mark.asyncio
    async def test_generation_failure_is_empty_and_uncached(self, fake_openai):
        fake_openai.reply(openai.OpenAIError("boom"), '["drug one"]')
        assert await drug_mappings.get_drugs_for_condition("zebra kuru") == []
        assert await drug_mappings.get_drugs_for_condition("zebra kuru") == ["drug one"]

    @pytest.mark.asyncio
    async def test_unconfigured_generation_is_empty(self, no_openai_env):
        assert await drug_mappings.get_drugs_for_condition("zebra kuru") == []


# ---------------------------------------------------------------------------
# Validation pipeline
# ---------------------------------------------------------------------------


class TestValidatedDrugs:
    @pytest.mark.asyncio
    async def test_filters_sorts_and_caches(self, mock_api, fake_openai):
        mock_api.add(RXNAV_DRUGS, rxnorm_handler)
        fake_openai.reply(
            json.dumps(
                [
                    {"drugName": "Zestril (lisinopril)", "score": 10, "reasoning": "FDA-approved for hypertension"},
                    {"drugName": "Norvasc (amlodipine)", "score": 3, "reasoning": "Weak"},
                    {"drugName": "Losartan Potassium (losartan)", "score": 8, "reasoning": "FDA-approved"},
                ]
            )
        )
        drugs = await drug_tools.get_validated_drugs("Essential (primary) hypertension", "i10")
        assert [d["brandName"] for d in drugs] == ["Zestril", "Losartan"]
        assert drugs[0]["indication"] == "Oral Tablet - 10 MG"
        assert drugs[0]["manufacturer"] == "Various"
        assert drugs[0]["relevanceReasoning"] == "FDA-approved for hypertension"

        again = await drug_tools.get_validated_drugs("anything", "I10")
        assert again == drugs
        assert len(fake_openai.completions.calls) == 1

    @pytest.mark.asyncio
    async def test_scoring_failure_returns_unscored_uncached(self, mock_api, fake_openai):
        mock_api.add(RXNAV_DRUGS, rxnorm_handler)
        fake_openai.reply(openai.OpenAIError("service down"))
        drugs = await drug_tools.get_validated_drugs("Essential (primary) hypertension", "I10")
        assert len(drugs) == 3
        assert {d["relevanceScore"] for d in drugs} == {-1}
        assert drug_tools.get_validation_cache_stats()["total"] == 0

    @pytest.mark.asyncio
    async def test_unconfigured_ai_propagates(self, mock_api, no_openai_env):
        mock_api.add(RXNAV_DRUGS, rxnorm_handler)
        with pytest.raises(ConfigurationError):
            await drug_tools.get_validated_drugs("Essential (primary) hypertension", "I10")

    @pytest.mark.asyncio
    async def test_no_rxnorm_matches_cached_empty(self, mock_api, fake_openai):
        mock_api.add(RXNAV_DRUGS, {"drugGroup": {}})
        assert await drug_tools.get_validated_drugs("Essential (primary) hypertension", "I10") == []
        assert drug_tools.get_validation_cache_stats()["total"] == 1
        assert fake_openai.completions.calls == []

    def test_score_matching(self):
        score_map = drug_tools.build_score_map(
            [{"drugName": "Ozempic (semaglutide)", "score": 9, "reasoning": "r"}]
        )
        assert drug_tools.find_matching_score({"brandName": "Ozempic", "genericName": "x"}, score_map)["score"] == 9
        assert drug_tools.find_matching_score({"brandName": "Y", "genericName": "semaglutide"}, score_map)["score"] == 9
        assert drug_tools.find_matching_score({"brandName": "Xyw", "genericName": "q"}, score_map) is None

    @pytest.mark.asyncio
    async def test_tool_handlers(self, mock_api):
        mock_api.add(RXNAV_DRUGS, rxnorm_handler)
        candidates = await drug_tools.HANDLERS["list_candidate_drugs"]({"condition_name": "hypertension"})
        assert candidates["count"] == 3

        found = await drug_tools.HANDLERS["lookup_rxnorm_drug"]({"drug_name": "nope"})
        assert found == {"query": "nope", "found": False}
