"""
Condition-to-drug candidate lists.

Lookup tiers:
  1. Curated keyword table (first key contained in the condition name wins).
  2. 24h fallback cache of previously AI-generated lists.
  3. Azure OpenAI generation; concurrent requests for the same condition
     share one in-flight task.

Names are generic where possible so RxNorm can resolve brand and form.
"""

import asyncio
import logging

import openai

from .cache import DAY, TTLCache
from .drug_ai import generate_drug_list
from .errors import ICDExplorerError

logger = logging.getLogger(__name__)

FALLBACK_CACHE_MAX_SIZE = 200
TELEMETRY_LOG_INTERVAL = 50

_fallback_cache: TTLCache[list[str]] = TTLCache(ttl_seconds=DAY, max_size=FALLBACK_CACHE_MAX_SIZE)
_in_flight: dict[str, "asyncio.Task[list[str]]"] = {}

_telemetry = {"totalLookups": 0, "curatedHits": 0, "fallbackCacheHits": 0, "aiGenerations": 0}

# Labelled for obesity first, then common off-label use
OBESITY_DRUGS = [
    "Wegovy", "Saxenda", "Zepbound", "phentermine/topiramate", "naltrexone/bupropion",
    "phentermine", "orlistat", "diethylpropion",
    "Ozempic", "Mounjaro", "metformin",
]

# Insertion order matters: the first key found in the condition name wins.
CONDITION_DRUG_MAPPINGS: dict[str, list[str]] = {
    "obesity": OBESITY_DRUGS,
    "weight": OBESITY_DRUGS,
    "morbid": OBESITY_DRUGS,
    "overweight": OBESITY_DRUGS,
    "bmi": OBESITY_DRUGS,
    "diabetes": [
        "metformin", "semaglutide", "empagliflozin", "dapagliflozin", "liraglutide", "sitagliptin",
        "glipizide", "insulin glargine", "dulaglutide", "canagliflozin",
    ],
    "glucose": ["metformin", "semaglutide", "empagliflozin", "sitagliptin", "glipizide", "insulin glargine"],
    "hypothyroid": ["levothyroxine", "liothyronine"],
    "hyperthyroid": ["methimazole", "propylthiouracil", "propranolol"],
    "hypertension": [
        "lisinopril", "amlodipine", "losartan", "hydrochlorothiazide", "metoprolol", "valsartan",
        "olmesartan", "chlorthalidone",
    ],
    "blood pressure": [
        "lisinopril", "amlodipine", "losartan", "hydrochlorothiazide", "metoprolol", "valsartan",
    ],
    "high blood pressure": ["lisinopril", "amlodipine", "losartan", "hydrochlorothiazide", "metoprolol"],
    "arrhythmia": [
        "metoprolol", "amiodarone", "flecainide", "sotalol", "diltiazem", "digoxin", "propafenone",
        "dronedarone",
    ],
    "tachycardia": ["metoprolol", "diltiazem", "verapamil", "adenosine", "amiodarone"],
    "bradycardia": ["atropine", "isoproterenol", "dopamine"],
    "cholesterol": [
        "atorvastatin", "rosuvastatin", "simvastatin", "pravastatin", "ezetimibe", "evolocumab",
        "alirocumab", "fenofibrate",
    ],
    "lipid": ["atorvastatin", "rosuvastatin", "simvastatin", "ezetimibe", "fenofibrate"],
    "heart failure": [
        "sacubitril/valsartan", "carvedilol", "lisinopril", "spironolactone", "furosemide", "empagliflozin",
        "dapagliflozin",
    ],
    "atrial fibrillation": ["apixaban", "rivaroxaban", "warfarin", "metoprolol", "diltiazem", "amiodarone"],
    "myocardial infarction": [
        "aspirin", "clopidogrel", "ticagrelor", "prasugrel", "metoprolol", "carvedilol", "atorvastatin",
        "rosuvastatin", "lisinopril", "ramipril", "losartan", "nitroglycerin", "isosorbide mononitrate",
        "enoxaparin", "heparin",
    ],
    "heart attack": [
        "aspirin", "clopidogrel", "ticagrelor", "metoprolol", "atorvastatin", "lisinopril", "nitroglycerin",
        "enoxaparin",
    ],
    "acute coronary syndrome": [
        "aspirin", "clopidogrel", "ticagrelor", "prasugrel", "metoprolol", "atorvastatin", "lisinopril",
        "enoxaparin", "heparin", "nitroglycerin",
    ],
    "acute coronary": [
        "aspirin", "clopidogrel", "ticagrelor", "metoprolol", "atorvastatin", "lisinopril", "enoxaparin",
    ],
    "st elevation": [
        "aspirin", "clopidogrel", "ticagrelor", "prasugrel", "metoprolol", "atorvastatin", "lisinopril",
        "enoxaparin", "heparin", "bivalirudin",
    ],
    "stemi": [
        "aspirin", "clopidogrel", "ticagrelor", "prasugrel", "metoprolol", "atorvastatin", "lisinopril",
        "enoxaparin",
    ],
    "nstemi": [
        "aspirin", "clopidogrel", "ticagrelor", "metoprolol", "atorvastatin", "lisinopril", "enoxaparin",
    ],
    "non-st elevation": [
        "aspirin", "clopidogrel", "ticagrelor", "metoprolol", "atorvastatin", "lisinopril", "enoxaparin",
    ],
    "angina": [
        "nitroglycerin", "isosorbide mononitrate", "isosorbide dinitrate", "metoprolol", "atenolol",
        "amlodipine", "diltiazem", "ranolazine", "aspirin", "atorvastatin",
    ],
    "chest pain": ["nitroglycerin", "aspirin", "metoprolol", "atorvastatin"],
    "coronary artery disease": [
        "aspirin", "clopidogrel", "atorvastatin", "rosuvastatin", "metoprolol", "lisinopril", "amlodipine",
        "nitroglycerin", "ezetimibe",
    ],
    "coronary artery": ["aspirin", "clopidogrel", "atorvastatin", "metoprolol", "lisinopril", "amlodipine"],
    "ischemic heart": ["aspirin", "clopidogrel", "atorvastatin", "metoprolol", "lisinopril", "nitroglycerin"],
    "cardiac ischemia": ["aspirin", "atorvastatin", "metoprolol", "lisinopril", "nitroglycerin"],
    "unstable angina": [
        "aspirin", "clopidogrel", "ticagrelor", "metoprolol", "atorvastatin", "lisinopril", "enoxaparin",
        "nitroglycerin",
    ],
    "depression": [
        "sertraline", "escitalopram", "fluoxetine", "venlafaxine", "duloxetine", "bupropion", "citalopram",
        "mirtazapine",
    ],
    "depressive": ["sertraline", "escitalopram", "fluoxetine", "venlafaxine", "duloxetine", "bupropion"],
    "anxiety": [
        "sertraline", "escitalopram", "venlafaxine", "buspirone", "duloxetine", "paroxetine", "lorazepam",
        "alprazolam",
    ],
    "bipolar": ["lithium", "lamotrigine", "valproate", "quetiapine", "aripiprazole", "olanzapine"],
    "adhd": ["methylphenidate", "amphetamine", "lisdexamfetamine", "atomoxetine", "guanfacine"],
    "insomnia": ["zolpidem", "eszopiclone", "trazodone", "suvorexant", "lemborexant", "melatonin"],
    "sleep": ["zolpidem", "eszopiclone", "trazodone", "suvorexant", "melatonin"],
    "asthma": [
        "fluticasone", "budesonide", "albuterol", "fluticasone/salmeterol", "budesonide/formoterol",
        "montelukast", "tiotropium", "dupilumab",
    ],
    "copd": [
        "tiotropium", "fluticasone/salmeterol", "budesonide/formoterol", "umeclidinium", "albuterol",
        "roflumilast",
    ],
    "chronic obstructive pulmonary": [
        "albuterol", "ipratropium", "tiotropium", "fluticasone", "budesonide", "salmeterol", "formoterol",
        "prednisone", "roflumilast",
    ],
    "pneumonia": [
        "amoxicillin", "azithromycin", "levofloxacin", "ceftriaxone", "doxycycline", "moxifloxacin",
        "ampicillin", "piperacillin",
    ],
    "bronchitis": [
        "albuterol", "guaifenesin", "dextromethorphan", "azithromycin", "amoxicillin", "prednisone",
        "ipratropium",
    ],
    "gerd": ["omeprazole", "esomeprazole", "pantoprazole", "lansoprazole", "famotidine", "ranitidine"],
    "reflux": ["omeprazole", "esomeprazole", "pantoprazole", "famotidine"],
    "heartburn": ["omeprazole", "esomeprazole", "pantoprazole", "famotidine"],
    "gastroesophageal reflux": [
        "omeprazole", "pantoprazole", "esomeprazole", "lansoprazole", "famotidine", "sucralfate",
        "metoclopramide",
    ],
    "acid reflux": ["omeprazole", "pantoprazole", "famotidine", "calcium carbonate"],
    "peptic ulcer": [
        "omeprazole", "pantoprazole", "sucralfate", "misoprostol", "famotidine", "amoxicillin",
        "clarithromycin", "metronidazole", "bismuth subsalicylate",
    ],
    "gastric ulcer": ["omeprazole", "pantoprazole", "sucralfate", "famotidine"],
    "crohn": [
        "mesalamine", "sulfasalazine", "budesonide", "prednisone", "azathioprine", "mercaptopurine",
        "methotrexate", "infliximab", "adalimumab", "vedolizumab",
    ],
    "ulcerative colitis": [
        "mesalamine", "sulfasalazine", "budesonide", "prednisone", "azathioprine", "infliximab",
        "adalimumab", "vedolizumab", "tofacitinib",
    ],
    "inflammatory bowel": [
        "mesalamine", "sulfasalazine", "budesonide", "prednisone", "infliximab", "adalimumab",
    ],
    "ibs": ["dicyclomine", "hyoscyamine", "linaclotide", "lubiprostone", "rifaximin", "alosetron"],
    "irritable bowel": [
        "dicyclomine", "hyoscyamine", "loperamide", "rifaximin", "lubiprostone", "linaclotide",
        "amitriptyline",
    ],
    "nausea": [
        "ondansetron", "promethazine", "metoclopramide", "prochlorperazine", "granisetron", "scopolamine",
        "dronabinol",
    ],
    "vomiting": ["ondansetron", "promethazine", "metoclopramide", "prochlorperazine"],
    "constipation": [
        "polyethylene glycol", "lactulose", "bisacodyl", "senna", "docusate", "linaclotide", "lubiprostone",
        "prucalopride",
    ],
    "diarrhea": ["loperamide", "diphenoxylate", "bismuth subsalicylate", "rifaximin"],
    "pain": [
        "ibuprofen", "naproxen", "acetaminophen", "celecoxib", "meloxicam", "gabapentin", "pregabalin",
        "tramadol",
    ],
    "back pain": [
        "ibuprofen", "naproxen", "acetaminophen", "cyclobenzaprine", "methocarbamol", "meloxicam",
        "diclofenac", "gabapentin", "duloxetine", "prednisone",
    ],
    "low back pain": ["ibuprofen", "naproxen", "acetaminophen", "cyclobenzaprine", "meloxicam"],
    "lumbar": ["ibuprofen", "naproxen", "acetaminophen", "cyclobenzaprine", "gabapentin"],
    "headache": ["acetaminophen", "ibuprofen", "naproxen", "sumatriptan", "aspirin"],
    "neuropathy": [
        "gabapentin", "pregabalin", "duloxetine", "amitriptyline", "nortriptyline", "capsaicin", "lidocaine",
        "carbamazepine", "venlafaxine",
    ],
    "diabetic neuropathy": ["gabapentin", "pregabalin", "duloxetine", "amitriptyline", "capsaicin"],
    "osteoarthritis": [
        "acetaminophen", "ibuprofen", "naproxen", "meloxicam", "diclofenac", "celecoxib", "tramadol",
        "duloxetine",
    ],
    "rheumatoid arthritis": [
        "methotrexate", "hydroxychloroquine", "sulfasalazine", "leflunomide", "adalimumab", "etanercept",
        "infliximab", "prednisone", "tofacitinib",
    ],
    "rheumatoid": [
        "methotrexate", "hydroxychloroquine", "sulfasalazine", "adalimumab", "etanercept", "prednisone",
    ],
    "arthritis": [
        "ibuprofen", "naproxen", "meloxicam", "celecoxib", "methotrexate", "adalimumab", "etanercept",
        "prednisone",
    ],
    "psoriasis": [
        "adalimumab", "etanercept", "ustekinumab", "secukinumab", "ixekizumab", "guselkumab", "risankizumab",
        "methotrexate", "cyclosporine", "apremilast", "deucravacitinib", "upadacitinib",
    ],
    "migraine": [
        "sumatriptan", "rizatriptan", "topiramate", "propranolol", "erenumab", "fremanezumab", "ubrogepant",
    ],
    "allergy": [
        "cetirizine", "loratadine", "fexofenadine", "fluticasone nasal", "montelukast", "diphenhydramine",
    ],
    "allergic": ["cetirizine", "loratadine", "fexofenadine", "fluticasone nasal", "montelukast"],
    "infection": [
        "amoxicillin", "azithromycin", "ciprofloxacin", "doxycycline", "cephalexin",
        "sulfamethoxazole/trimethoprim",
    ],
    "urinary": ["nitrofurantoin", "sulfamethoxazole/trimethoprim", "ciprofloxacin", "fosfomycin"],
    "urinary tract infection": [
        "nitrofurantoin", "trimethoprim", "sulfamethoxazole", "ciprofloxacin", "levofloxacin", "cephalexin",
        "amoxicillin", "fosfomycin",
    ],
    "uti": ["nitrofurantoin", "trimethoprim", "sulfamethoxazole", "ciprofloxacin", "cephalexin"],
    "cystitis": ["nitrofurantoin", "trimethoprim", "sulfamethoxazole", "ciprofloxacin", "fosfomycin"],
    "pyelonephritis": ["ciprofloxacin", "levofloxacin", "ceftriaxone", "trimethoprim", "sulfamethoxazole"],
    "cellulitis": [
        "cephalexin", "dicloxacillin", "clindamycin", "trimethoprim", "sulfamethoxazole", "amoxicillin",
        "doxycycline", "vancomycin",
    ],
    "sepsis": [
        "vancomycin", "piperacillin", "tazobactam", "meropenem", "ceftriaxone", "norepinephrine",
        "vasopressin", "hydrocortisone", "cefepime",
    ],
    "septic shock": [
        "norepinephrine", "vasopressin", "vancomycin", "piperacillin", "meropenem", "hydrocortisone",
        "epinephrine",
    ],
    "covid": [
        "paxlovid", "nirmatrelvir", "ritonavir", "remdesivir", "dexamethasone", "baricitinib", "tocilizumab",
        "molnupiravir", "enoxaparin",
    ],
    "coronavirus": ["paxlovid", "remdesivir", "dexamethasone", "baricitinib", "tocilizumab"],
    "osteoporosis": ["alendronate", "risedronate", "ibandronate", "denosumab", "teriparatide", "raloxifene"],
    "erectile": ["sildenafil", "tadalafil", "vardenafil", "avanafil"],
    "gout": ["allopurinol", "febuxostat", "colchicine", "probenecid"],
    "epilepsy": ["levetiracetam", "lamotrigine", "valproate", "carbamazepine", "phenytoin", "topiramate"],
    "seizure": [
        "levetiracetam", "lamotrigine", "valproate", "carbamazepine", "lorazepam", "diazepam", "phenytoin",
    ],
    "parkinson": [
        "levodopa", "carbidopa", "pramipexole", "ropinirole", "rasagiline", "selegiline", "entacapone",
        "amantadine", "trihexyphenidyl", "apomorphine",
    ],
    "alzheimer": ["donepezil", "rivastigmine", "galantamine", "memantine", "aducanumab", "lecanemab"],
    "dementia": ["donepezil", "rivastigmine", "galantamine", "memantine"],
    "stroke": [
        "alteplase", "aspirin", "clopidogrel", "warfarin", "apixaban", "rivaroxaban", "atorvastatin",
        "lisinopril", "amlodipine",
    ],
    "cerebrovascular": ["aspirin", "clopidogrel", "warfarin", "apixaban", "atorvastatin"],
    "multiple sclerosis": [
        "interferon beta", "glatiramer", "dimethyl fumarate", "fingolimod", "natalizumab", "ocrelizumab",
        "teriflunomide", "siponimod", "cladribine",
    ],
    "major depressive": ["sertraline", "fluoxetine", "escitalopram", "venlafaxine", "duloxetine", "bupropion"],
    "generalized anxiety": ["sertraline", "escitalopram", "venlafaxine", "duloxetine", "buspirone"],
    "panic": ["sertraline", "paroxetine", "venlafaxine", "alprazolam", "clonazepam"],
    "schizophrenia": [
        "risperidone", "olanzapine", "quetiapine", "aripiprazole", "ziprasidone", "paliperidone",
        "clozapine", "haloperidol", "lurasidone",
    ],
    "psychosis": ["risperidone", "olanzapine", "quetiapine", "aripiprazole", "haloperidol"],
    "attention deficit": ["methylphenidate", "amphetamine", "lisdexamfetamine", "atomoxetine", "guanfacine"],
    "sleep disorder": ["zolpidem", "eszopiclone", "trazodone", "melatonin", "suvorexant"],
    "hypothyroidism": ["levothyroxine", "liothyronine"],
    "thyroid": ["levothyroxine", "liothyronine", "methimazole", "propylthiouracil"],
    "hyperthyroidism": ["methimazole", "propylthiouracil", "propranolol", "atenolol"],
    "eczema": [
        "hydrocortisone", "triamcinolone", "tacrolimus", "pimecrolimus", "dupilumab", "crisaborole",
        "hydroxyzine", "cetirizine",
    ],
    "dermatitis": ["hydrocortisone", "triamcinolone", "tacrolimus", "pimecrolimus", "dupilumab"],
    "atopic dermatitis": ["tacrolimus", "pimecrolimus", "dupilumab", "crisaborole", "triamcinolone"],
    "acne": [
        "benzoyl peroxide", "tretinoin", "adapalene", "clindamycin", "doxycycline", "isotretinoin",
        "spironolactone", "azelaic acid",
    ],
    "anemia": [
        "ferrous sulfate", "iron sucrose", "ferric carboxymaltose", "vitamin b12", "cyanocobalamin",
        "folic acid", "epoetin alfa", "darbepoetin",
    ],
    "iron deficiency": ["ferrous sulfate", "ferrous gluconate", "iron sucrose", "ferric carboxymaltose"],
    "allergic rhinitis": [
        "cetirizine", "loratadine", "fexofenadine", "fluticasone", "mometasone", "azelastine", "montelukast",
        "diphenhydramine",
    ],
    "anaphylaxis": ["epinephrine", "diphenhydramine", "methylprednisolone", "famotidine"],
    "weight loss": ["semaglutide", "liraglutide", "tirzepatide", "phentermine", "orlistat"],
    "deep vein thrombosis": ["enoxaparin", "heparin", "warfarin", "rivaroxaban", "apixaban", "edoxaban"],
    "dvt": ["enoxaparin", "heparin", "warfarin", "rivaroxaban", "apixaban"],
    "pulmonary embolism": ["enoxaparin", "heparin", "warfarin", "rivaroxaban", "apixaban", "alteplase"],
    "thrombosis": ["enoxaparin", "heparin", "warfarin", "rivaroxaban", "apixaban"],
    "embolism": ["enoxaparin", "heparin", "warfarin", "rivaroxaban", "apixaban"],
}


def _cache_key(condition_name: str) -> str:
    return " ".join(condition_name.lower().split())


def _record_lookup() -> None:
    _telemetry["totalLookups"] += 1
    total = _telemetry["totalLookups"]
    if total % TELEMETRY_LOG_INTERVAL == 0:
        logger.info(
            "Drug mapping lookups: %d total, %d curated, %d cached fallback, %d AI generated",
            total,
            _telemetry["curatedHits"],
            _telemetry["fallbackCacheHits"],
            _telemetry["aiGenerations"],
        )


def find_curated_drugs(condition_name: str) -> list[str] | None:
    normalized = condition_name.lower().strip()
    for key, drugs in CONDITION_DRUG_MAPPINGS.items():
        if key in normalized:
            return drugs
    return None


async def _generate_and_cache(cache_key: str, condition_name: str) -> list[str]:
    _telemetry["aiGenerations"] += 1
    try:
        drugs = await generate_drug_list(condition_name)
    except (ICDExplorerError, openai.OpenAIError) as e:
        logger.warning("AI drug list generation failed for %r: %s", condition_name, e)
        return []
    finally:
        _in_flight.pop(cache_key, None)

    if not drugs:
        logger.warning("AI returned an empty drug list for %r (not cached)", condition_name)
        return []
    _fallback_cache.set(cache_key, drugs)
    logger.info("Cached %d AI-generated drugs for %r", len(drugs), condition_name)
    return drugs


async def get_drugs_for_condition(condition_name: str) -> list[str]:
    """Candidate drug names for a condition; [] when nothing can be found."""
    if not condition_name or not condition_name.strip():
        return []

    _record_lookup()

    curated = find_curated_drugs(condition_name)
    if curated is not None:
        _telemetry["curatedHits"] += 1
        return curated

    cache_key = _cache_key(condition_name)
    cached = _fallback_cache.get(cache_key)
    if cached:
        _telemetry["fallbackCacheHits"] += 1
        return cached

    task = _in_flight.get(cache_key)
    if task is None:
        logger.info("No curated mapping for %r, generating with AI", condition_name)
        task = asyncio.ensure_future(_generate_and_cache(cache_key, condition_name))
        _in_flight[cache_key] = task
    return await asyncio.shield(task)


def get_available_conditions() -> list[str]:
    return list(CONDITION_DRUG_MAPPINGS)


def get_total_drug_count() -> int:
    return len({drug for drugs in CONDITION_DRUG_MAPPINGS.values() for drug in drugs})


def get_fallback_stats() -> dict:
    stats = _fallback_cache.stats()
    total = _telemetry["totalLookups"]
    return {
        **_telemetry,
        "curatedHitRate": _telemetry["curatedHits"] / total if total else 0,
        "fallbackCacheSize": stats["size"],
        "validEntries": stats["valid_entries"],
        "expiredEntries": stats["expired_entries"],
    }


def clear_fallback_cache() -> int:
    _in_flight.clear()
    return _fallback_cache.clear()
