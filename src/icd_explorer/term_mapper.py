"""
Lay-term to medical-term translation.

Patients search "heart attack", ICD-10 says "myocardial infarction". The
mapping table below drives the fallback search path; queries not in the table
fall through to organ-cancer normalization.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .query_normalizer import normalize_query

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TermMapping:
    medical: str
    icd_hint: Optional[str] = None
    alternatives: tuple[str, ...] = ()


@dataclass
class TranslationResult:
    original_term: str
    search_terms: list[str] = field(default_factory=list)
    was_translated: bool = False
    medical_term: Optional[str] = None
    matched_term: Optional[str] = None
    icd_hint: Optional[str] = None
    message: Optional[str] = None
    source: str = "term-mapper"

    def to_dict(self) -> dict:
        return {
            "originalTerm": self.original_term,
            "searchTerms": self.search_terms,
            "wasTranslated": self.was_translated,
            "medicalTerm": self.medical_term,
            "matchedTerm": self.matched_term,
            "icdHint": self.icd_hint,
            "message": self.message,
            "source": self.source,
        }


def _m(medical: str, icd_hint: str, *alternatives: str) -> TermMapping:
    return TermMapping(medical=medical, icd_hint=icd_hint, alternatives=alternatives)


# Insertion order matters: partial matching returns the first term found.
TERM_MAPPINGS: dict[str, TermMapping] = {
    # Cardiovascular
    "heart attack": _m("myocardial infarction", "I21", "acute coronary syndrome", "MI"),
    "mi": _m("myocardial infarction", "I21"),
    "cardiac arrest": _m("cardiac arrest", "I46", "heart stopped"),
    "stroke": _m("cerebral infarction", "I63", "cerebrovascular accident", "CVA"),
    "cva": _m("cerebrovascular accident", "I63", "cerebral infarction"),
    "brain attack": _m("cerebral infarction", "I63"),
    "mini stroke": _m("transient ischemic attack", "G45", "TIA"),
    "tia": _m("transient ischemic attack", "G45"),
    "high blood pressure": _m("hypertension", "I10", "essential hypertension"),
    "hbp": _m("hypertension", "I10"),
    "low blood pressure": _m("hypotension", "I95"),
    "chest pain": _m("angina pectoris", "I20", "chest pain", "precordial pain"),
    "angina": _m("angina pectoris", "I20"),
    "irregular heartbeat": _m("atrial fibrillation", "I48", "cardiac arrhythmia", "heart palpitations"),
    "afib": _m("atrial fibrillation", "I48"),
    "heart palpitations": _m("palpitations", "R00", "cardiac arrhythmia"),
    "heart failure": _m("heart failure", "I50", "congestive heart failure", "CHF"),
    "chf": _m("congestive heart failure", "I50"),
    "high cholesterol": _m("hyperlipidemia", "E78", "hypercholesterolemia", "dyslipidemia"),
    # Respiratory
    "flu": _m("influenza", "J11", "seasonal influenza"),
    "the flu": _m("influenza", "J11"),
    "cold": _m("acute nasopharyngitis", "J00", "upper respiratory infection", "common cold"),
    "common cold": _m("acute nasopharyngitis", "J00"),
    "runny nose": _m("rhinorrhea", "R09", "nasal discharge"),
    "stuffy nose": _m("nasal congestion", "R09", "nasal obstruction"),
    "sore throat": _m("pharyngitis", "J02", "acute pharyngitis"),
    "strep throat": _m("streptococcal pharyngitis", "J02"),
    "bronchitis": _m("acute bronchitis", "J20", "bronchitis"),
    "chest cold": _m("acute bronchitis", "J20"),
    "lung infection": _m("pneumonia", "J18", "pulmonary infection"),
    "wheezing": _m("wheezing", "R06", "bronchospasm"),
    "shortness of breath": _m("dyspnea", "R06", "breathlessness"),
    "hay fever": _m("allergic rhinitis", "J30", "seasonal allergies"),
    "allergies": _m("allergic rhinitis", "J30", "allergy"),
    # Digestive
    "heartburn": _m("gastroesophageal reflux", "K21", "GERD", "acid reflux"),
    "acid reflux": _m("gastroesophageal reflux disease", "K21", "GERD"),
    "gerd": _m("gastroesophageal reflux disease", "K21"),
    "stomach pain": _m("abdominal pain", "R10", "epigastric pain", "gastralgia"),
    "stomachache": _m("abdominal pain", "R10"),
    "belly pain": _m("abdominal pain", "R10"),
    "stomach ulcer": _m("peptic ulcer", "K25", "gastric ulcer"),
    "ulcer": _m("peptic ulcer", "K27", "gastric ulcer", "duodenal ulcer"),
    "ibs": _m("irritable bowel syndrome", "K58"),
    "irritable bowel": _m("irritable bowel syndrome", "K58"),
    "food poisoning": _m("foodborne illness", "A05", "gastroenteritis"),
    "stomach bug": _m("viral gastroenteritis", "A09", "gastroenteritis"),
    # Musculoskeletal
    "back pain": _m("low back pain", "M54", "dorsalgia", "lumbago"),
    "lower back pain": _m("low back pain", "M54", "lumbago"),
    "lbp": _m("low back pain", "M54"),
    "slipped disc": _m("intervertebral disc disorder", "M51", "herniated disc", "disc herniation"),
    "herniated disc": _m("intervertebral disc displacement", "M51"),
    "sciatica": _m("sciatica", "M54", "sciatic nerve pain"),
    "broken bone": _m("fracture", "S", "bone fracture"),
    "fractured bone": _m("fracture", "S"),
    "sprain": _m("sprain", "S", "ligament injury"),
    "pulled muscle": _m("muscle strain", "M62", "muscular strain"),
    "arthritis": _m("arthritis", "M19", "osteoarthritis", "joint inflammation"),
    "joint pain": _m("arthralgia", "M25", "joint pain"),
    "knee pain": _m("knee pain", "M25", "gonalgia"),
    "stiff neck": _m("cervicalgia", "M54", "neck pain"),
    # Mental health
    "anxiety": _m("anxiety disorder", "F41", "generalized anxiety disorder"),
    "anxiety attack": _m("panic disorder", "F41", "panic attack"),
    "panic attack": _m("panic disorder", "F41", "acute anxiety"),
    "depression": _m("major depressive disorder", "F32", "depressive disorder"),
    "feeling depressed": _m("depressive episode", "F32"),
    "ptsd": _m("post-traumatic stress disorder", "F43", "PTSD"),
    "emotional trauma": _m("post-traumatic stress disorder", "F43", "psychological trauma"),
    "adhd": _m("attention deficit hyperactivity disorder", "F90", "ADHD", "attention deficit disorder"),
    "add": _m("attention deficit disorder", "F90", "ADHD"),
    "bipolar": _m("bipolar disorder", "F31", "manic depression"),
    # Neurological
    "headache": _m("headache", "R51", "cephalgia"),
    "migraine": _m("migraine", "G43", "migraine headache"),
    "seizure": _m("seizure", "G40", "convulsion", "epileptic seizure"),
    "epilepsy": _m("epilepsy", "G40", "seizure disorder"),
    "dizziness": _m("dizziness", "R42", "vertigo", "lightheadedness"),
    "vertigo": _m("vertigo", "H81", "vestibular disorder"),
    "numbness": _m("paresthesia", "R20", "numbness and tingling"),
    "tingling": _m("paresthesia", "R20", "tingling sensation"),
    # Endocrine / metabolic
    "sugar diabetes": _m("diabetes mellitus", "E11", "type 2 diabetes"),
    "high blood sugar": _m("hyperglycemia", "E11", "diabetes mellitus"),
    "low blood sugar": _m("hypoglycemia", "E16"),
    "underactive thyroid": _m("hypothyroidism", "E03", "thyroid deficiency"),
    "overactive thyroid": _m("hyperthyroidism", "E05", "thyrotoxicosis"),
    "obesity": _m("obesity", "E66", "morbid obesity"),
    # Skin
    "rash": _m("dermatitis", "L30", "skin rash", "exanthem"),
    "eczema": _m("atopic dermatitis", "L20", "eczema"),
    "hives": _m("urticaria", "L50", "allergic hives"),
    "acne": _m("acne", "L70", "acne vulgaris"),
    "psoriasis": _m("psoriasis", "L40"),
    "skin infection": _m("cellulitis", "L03", "skin and soft tissue infection"),
    # Genitourinary
    "uti": _m("urinary tract infection", "N39"),
    "bladder infection": _m("cystitis", "N30", "urinary tract infection"),
    "kidney stones": _m("nephrolithiasis", "N20", "renal calculi", "kidney stones"),
    "kidney infection": _m("pyelonephritis", "N10", "kidney infection"),
    "kidney disease": _m("chronic kidney disease", "N18", "renal insufficiency"),
    # Sleep
    "sleep apnea": _m("obstructive sleep apnea", "G47", "sleep apnea"),
    "insomnia": _m("insomnia", "G47", "sleep disorder"),
    "can't sleep": _m("insomnia", "G47"),
    "snoring": _m("snoring", "R06", "sleep disordered breathing"),
    # General symptoms
    "fever": _m("fever", "R50", "pyrexia"),
    "fatigue": _m("fatigue", "R53", "malaise", "exhaustion"),
    "tired all the time": _m("chronic fatigue", "R53", "fatigue"),
    "weight loss": _m("abnormal weight loss", "R63", "unintentional weight loss"),
    "nausea": _m("nausea", "R11", "nausea and vomiting"),
    "vomiting": _m("vomiting", "R11", "emesis"),
    "swelling": _m("edema", "R60", "swelling"),
    "fainting": _m("syncope", "R55", "fainting", "loss of consciousness"),
}

EXAMPLE_TERMS = (
    "heart attack",
    "stroke",
    "flu",
    "back pain",
    "anxiety",
    "broken bone",
    "heartburn",
    "high blood pressure",
    "headache",
    "uti",
)


def get_mapping(term: str) -> Optional[TermMapping]:
    return TERM_MAPPINGS.get(term.lower().strip())


def _find_partial_match(query: str) -> Optional[tuple[str, TermMapping]]:
    # A known term inside the query ("severe heart attack")
    for term, mapping in TERM_MAPPINGS.items():
        if len(term) >= 3 and term in query:
            return term, mapping
    # The query inside a known term ("heart att")
    if len(query) >= 4:
        for term, mapping in TERM_MAPPINGS.items():
            if query in term:
                return term, mapping
    return None


def _translated(original: str, medical: str, matched: str, icd_hint: Optional[str], source: str) -> TranslationResult:
    search_terms = [medical]
    if original.lower().strip() != medical.lower():
        search_terms.append(original)
    return TranslationResult(
        original_term=original,
        search_terms=search_terms,
        was_translated=True,
        medical_term=medical,
        matched_term=matched,
        icd_hint=icd_hint,
        message=f'Showing results for "{medical}"',
        source=source,
    )


def translate_query(query: str) -> TranslationResult:
    normalized = query.lower().strip()
    if not normalized:
        return TranslationResult(original_term=query)

    mapping = TERM_MAPPINGS.get(normalized)
    if mapping:
        return _translated(query, mapping.medical, normalized, mapping.icd_hint, "term-mapper")

    partial = _find_partial_match(normalized)
    if partial:
        term, mapping = partial
        logger.debug("Partial term match %r -> %r", query, term)
        return _translated(query, mapping.medical, term, mapping.icd_hint, "term-mapper")

    normalization = normalize_query(query)
    if normalization.was_normalized:
        return _translated(
            query, normalization.normalized_query, normalized, None, "query-normalizer"
        )

    return TranslationResult(original_term=query, search_terms=[query])


def would_translate(query: str) -> bool:
    return translate_query(query).was_translated


def get_translation_preview(query: str) -> Optional[str]:
    result = translate_query(query)
    return result.medical_term if result.was_translated else None


def get_example_terms(count: int = 5) -> list[str]:
    return list(EXAMPLE_TERMS[:count])
