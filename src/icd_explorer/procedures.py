"""Procedure records shared by the SNOMED CT, ICD-10-PCS and HCPCS lookups."""

from dataclasses import dataclass
from typing import Optional

PROCEDURE_CATEGORIES = ("diagnostic", "therapeutic", "monitoring", "equipment", "other")
CODE_SYSTEMS = ("SNOMED", "ICD10PCS", "HCPCS")


@dataclass
class ProcedureResult:
    code: str
    code_system: str
    description: str
    category: str = "other"
    # -1 until scored; curated entries carry a 0-1 confidence
    relevance_score: float = -1
    source: str = "umls_api"
    setting: str = "both"
    is_active: bool = True
    clinical_rationale: Optional[str] = None

    def to_dict(self) -> dict:
        result = {
            "code": self.code,
            "codeSystem": self.code_system,
            "description": self.description,
            "category": self.category,
            "relevanceScore": self.relevance_score,
            "source": self.source,
            "setting": self.setting,
            "isActive": self.is_active,
        }
        if self.clinical_rationale:
            result["clinicalRationale"] = self.clinical_rationale
        return result
