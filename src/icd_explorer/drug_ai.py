"""
Azure OpenAI helpers for the drug pipeline.

- score_drug_relevance: rate how well each drug treats a condition (0-10)
- generate_drug_list: propose generic drug names for uncurated conditions
"""

import json
import logging
import re

from openai import AsyncAzureOpenAI

from .config import AzureOpenAIConfig
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

MAX_GENERATED_DRUGS = 15
GENERATION_TIMEOUT_SECONDS = 10.0
SCORING_MAX_TOKENS = 2000
GENERATION_MAX_TOKENS = 500
MAX_REASONING_LENGTH = 150

_openai_client: AsyncAzureOpenAI | None = None
_deployment: str | None = None

SCORING_SYSTEM_PROMPT = """You are a senior clinical pharmacologist who evaluates drug-condition matches using evidence-based medicine and FDA labeling.

Score each drug's relevance for treating the given condition on a 0-10 scale:
10: FDA-approved with this exact condition as a primary labeled indication.
8-9: FDA-approved for the condition, or guideline standard of care.
6-7: Common off-label use backed by substantial clinical evidence.
4-5: Occasionally used; treats related symptoms or complications.
2-3: Rarely relevant; narrow subtypes or adjunct use with weak evidence.
0-1: Not a treatment. The condition appears only as a contraindication, warning, adverse event, or risk factor.

If the condition is named only under WARNINGS or ADVERSE REACTIONS and not under INDICATIONS AND USAGE, score 0-1.

Respond with ONLY a JSON array, no markdown fences and no prose. Each element has exactly:
drugName (string), score (integer 0-10), reasoning (string under 100 characters citing the evidence, e.g. "FDA-approved for X")."""


def _scoring_prompt(condition_name: str, icd_code: str | None, drugs: list[dict]) -> str:
    drug_lines = "\n".join(f"{i}. {d['brandName']} ({d['genericName']})" for i, d in enumerate(drugs, start=1))
    condition = f"{condition_name} (ICD-10: {icd_code})" if icd_code else condition_name
    return f"""Medical condition: {condition}

Drugs to evaluate:
{drug_lines}

For each drug decide whether it TREATS the condition or only mentions it as a side effect or risk, check FDA approval for this condition, weigh clinical guidelines, then apply the rubric.

Return a JSON array such as:
[{{"drugName": "Brand Name (Generic Name)", "score": 8, "reasoning": "FDA-approved for chronic weight management"}}]

Reference points:
- Wegovy (semaglutide) for obesity: 10
- Metformin for type 2 diabetes: 10
- Naproxen for obesity: 0
- Gabapentin for anxiety: 4"""


def _generation_prompt(condition_name: str) -> str:
    return f"""You are a clinical pharmacologist. List FDA-approved and common off-label prescription drugs for treating: {condition_name}

Rules:
- Generic names only ("adalimumab", not "Humira")
- At most {MAX_GENERATED_DRUGS} drugs, FDA-approved first
- Names must exist in RxNorm or OpenFDA
- Output a plain JSON array of strings with no numbering or commentary

Example: ["metformin", "semaglutide", "empagliflozin", "sitagliptin"]"""


def get_openai_client() -> tuple[AsyncAzureOpenAI, str]:
    """Get or create the Azure OpenAI client and its deployment name."""
    global _openai_client, _deployment
    if _openai_client is None:
        config = AzureOpenAIConfig.from_env()
        if not config.is_configured:
            raise ConfigurationError(
                "Azure OpenAI is not configured. Set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY."
            )
        _openai_client = AsyncAzureOpenAI(
            azure_endpoint=config.endpoint,
            api_key=config.api_key,
            api_version=config.api_version,
        )
        _deployment = config.deployment_name
    return _openai_client, _deployment


def reset_openai_client() -> None:
    global _openai_client, _deployment
    _openai_client = None
    _deployment = None


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_relevance_scores(raw: str) -> list[dict]:
    try:
        parsed = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError:
        logger.error("Relevance response is not valid JSON: %s", raw[:500])
        return []
    if not isinstance(parsed, list):
        logger.error("Relevance response is not a JSON array")
        return []

    scores = []
    for item in parsed:
        if (
            isinstance(item, dict)
            and isinstance(item.get("drugName"), str)
            and isinstance(item.get("score"), (int, float))
            and not isinstance(item.get("score"), bool)
            and isinstance(item.get("reasoning"), str)
        ):
            scores.append(
                {
                    "drugName": item["drugName"],
                    "score": max(0, min(10, round(item["score"]))),
                    "reasoning": item["reasoning"][:MAX_REASONING_LENGTH],
                }
            )
        else:
            logger.warning("Skipping malformed relevance item: %r", item)
    return scores


async def score_drug_relevance(condition_name: str, drugs: list[dict], icd_code: str | None = None) -> list[dict]:
    """Score drugs ({brandName, genericName}) for a condition.

    Raises ConfigurationError when Azure OpenAI is not configured; API
    errors propagate as openai.OpenAIError.
    """
    if not drugs:
        return []
    client, deployment = get_openai_client()

    response = await client.chat.completions.create(
        model=deployment,
        temperature=0,
        max_tokens=SCORING_MAX_TOKENS,
        messages=[
            {"role": "system", "content": SCORING_SYSTEM_PROMPT},
            {"role": "user", "content": _scoring_prompt(condition_name, icd_code, drugs)},
        ],
    )
    content = response.choices[0].message.content or ""
    scores = parse_relevance_scores(content)
    logger.info("Scored %d/%d drugs for %r", len(scores), len(drugs), condition_name)
    return scores


_LIST_LINE = re.compile(r"^[\s\-*•\d.]+(.+?)(?:\s*[-–—]\s*.+)?$")


def parse_drug_list(raw: str) -> list[str]:
    """Accept a JSON array, a bulleted/numbered list, or comma-separated names."""
    match = re.search(r"\[[\s\S]*\]", raw)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [item for item in parsed if isinstance(item, str)]

    drugs = []
    for line in raw.splitlines():
        line_match = _LIST_LINE.match(line)
        if line_match:
            name = re.sub(r"\s*\([^)]*\)", "", line_match.group(1)).strip()
            if 2 < len(name) < 100:
                drugs.append(name.lower())
    if drugs:
        return drugs

    names = (re.sub(r"^[\"']|[\"']$", "", part.strip()) for part in re.sub(r"[\[\]]", "", raw).split(","))
    return [name for name in names if 2 < len(name) < 100]


def validate_drug_list(drugs: list[str]) -> list[str]:
    cleaned = []
    for drug in drugs:
        name = drug.lower().strip()
        if 3 <= len(name) <= 100 and not re.search(r"[<>{}\[\]\\]", name) and name not in cleaned:
            cleaned.append(name)
    return cleaned


async def generate_drug_list(condition_name: str) -> list[str]:
    """Generate up to MAX_GENERATED_DRUGS generic drug names for a condition."""
    client, deployment = get_openai_client()

    response = await client.chat.completions.create(
        model=deployment,
        max_tokens=GENERATION_MAX_TOKENS,
        timeout=GENERATION_TIMEOUT_SECONDS,
        messages=[{"role": "user", "content": _generation_prompt(condition_name)}],
    )
    content = response.choices[0].message.content or ""
    drugs = validate_drug_list(parse_drug_list(content))[:MAX_GENERATED_DRUGS]
    logger.info("Generated %d drugs for %r", len(drugs), condition_name)
    return drugs
