"""
Organ-cancer query normalization.

ICD-10-CM names cancers "malignant neoplasm of <site>", so searches such as
"pancreas cancer" miss the right codes. Patterns, in match order:

  [adjective] <organ> cancer   -> malignant neoplasm of <organ>
  <organ> cancer               -> malignant neoplasm of <organ>
  cancer of [the] <organ>      -> malignant neoplasm of <organ>
  <organ> tumor / tumour       -> neoplasm of <organ>   (tumors may be benign)
  <organ> carcinoma            -> malignant neoplasm of <organ>
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

ORGAN_NAMES: set[str] = {
    # Digestive
    "pancreas", "pancreatic", "liver", "hepatic", "stomach", "gastric",
    "colon", "colonic", "rectum", "rectal", "esophagus", "esophageal", "oesophagus",
    "intestine", "intestinal", "bowel", "gallbladder", "bile", "biliary",
    "duodenum", "duodenal", "appendix",
    # Respiratory
    "lung", "pulmonary", "bronchus", "bronchial", "throat", "larynx", "laryngeal",
    "trachea", "tracheal", "nasopharynx", "nasopharyngeal", "pharynx", "pharyngeal",
    "sinus", "nasal",
    # Reproductive
    "breast", "ovary", "ovarian", "uterus", "uterine", "cervix", "cervical",
    "fallopian", "vulva", "vulvar", "vagina", "vaginal", "endometrium", "endometrial",
    "prostate", "prostatic", "testicle", "testicular", "testis", "penis", "penile",
    # Urinary
    "kidney", "renal", "bladder", "ureter", "ureteral", "urethra", "urethral",
    # Nervous system
    "brain", "cerebral", "spine", "spinal", "meninges", "meningeal", "nerve", "pituitary",
    # Head and neck
    "mouth", "oral", "tongue", "lip", "eye", "ocular", "ear", "salivary",
    "thyroid", "parathyroid",
    # Musculoskeletal
    "bone", "osseous", "muscle", "muscular", "cartilage", "joint", "soft tissue",
    # Lymphatic and blood
    "lymph", "lymphatic", "blood", "marrow", "spleen", "splenic", "plasma",
    # Endocrine
    "adrenal", "pineal", "pancreatic islet",
    # Skin
    "skin", "cutaneous", "dermal", "melanoma",
    # Other
    "heart", "cardiac", "peritoneum", "peritoneal", "pleura", "pleural",
    "retroperitoneum", "mediastinum",
}

ADJECTIVES = (
    "metastatic", "advanced", "early", "late", "stage", "primary",
    "secondary", "terminal", "aggressive", "invasive", "localized",
    "small", "large", "non-small", "squamous", "adenocarcinoma",
)

PATTERNS = ["organ_cancer", "cancer_of_organ", "organ_tumor", "organ_carcinoma"]

_ADJECTIVE_ORGAN_CANCER = re.compile(rf"^({'|'.join(ADJECTIVES)})\s+(\w+)\s+cancer$")
_ORGAN_CANCER = re.compile(r"^(\w+)\s+cancer$")
_CANCER_OF_ORGAN = re.compile(r"^cancer\s+of\s+(?:the\s+)?(\w+)$")
_ORGAN_TUMOR = re.compile(r"^(\w+)\s+tumou?r$")
_ORGAN_CARCINOMA = re.compile(r"^(\w+)\s+carcinoma$")

# (regex, organ group, output template, pattern name)
_RULES = (
    (_ADJECTIVE_ORGAN_CANCER, 2, "malignant neoplasm of {}", "organ_cancer"),
    (_ORGAN_CANCER, 1, "malignant neoplasm of {}", "organ_cancer"),
    (_CANCER_OF_ORGAN, 1, "malignant neoplasm of {}", "cancer_of_organ"),
    (_ORGAN_TUMOR, 1, "neoplasm of {}", "organ_tumor"),
    (_ORGAN_CARCINOMA, 1, "malignant neoplasm of {}", "organ_carcinoma"),
)


@dataclass(frozen=True)
class NormalizationResult:
    original_query: str
    normalized_query: Optional[str] = None
    was_normalized: bool = False
    matched_pattern: Optional[str] = None


def normalize_query(query: str) -> NormalizationResult:
    cleaned = query.strip().lower()
    if not cleaned:
        return NormalizationResult(original_query=query)

    for regex, group, template, pattern in _RULES:
        match = regex.match(cleaned)
        if not match:
            continue
        organ = match.group(group)
        if organ not in ORGAN_NAMES:
            continue
        normalized = template.format(organ)
        logger.debug("Normalized %r -> %r (pattern: %s)", query, normalized, pattern)
        return NormalizationResult(
            original_query=query,
            normalized_query=normalized,
            was_normalized=True,
            matched_pattern=pattern,
        )

    return NormalizationResult(original_query=query)


def would_normalize(query: str) -> bool:
    return normalize_query(query).was_normalized


def get_organ_names() -> list[str]:
    return sorted(ORGAN_NAMES)


def add_organ_names(organs: list[str]) -> None:
    ORGAN_NAMES.update(organ.lower() for organ in organs)
    logger.info("Added %d custom organ names", len(organs))


def get_normalizer_stats() -> dict:
    return {"organCount": len(ORGAN_NAMES), "patterns": list(PATTERNS)}
