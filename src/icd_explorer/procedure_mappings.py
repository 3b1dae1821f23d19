"""
Curated ICD-10-CM -> procedure mappings for the most common diagnoses.

Each condition lists SNOMED CT, ICD-10-PCS and HCPCS procedures with a short
clinical rationale. Used when the UMLS lookup finds nothing for a code.
"""

from dataclasses import dataclass
from typing import Optional

from .procedures import ProcedureResult

CURATED_SCORE = 0.95


@dataclass(frozen=True)
class CuratedMapping:
    icd10_codes: list[str]
    condition_name: str
    procedures: list[ProcedureResult]


def _p(
    code: str,
    code_system: str,
    description: str,
    category: str,
    setting: str,
    rationale: str,
    score: float = CURATED_SCORE,
) -> ProcedureResult:
    return ProcedureResult(
        code=code,
        code_system=code_system,
        description=description,
        category=category,
        relevance_score=score,
        source="curated",
        setting=setting,
        clinical_rationale=rationale,
    )


CURATED_MAPPINGS = [
    CuratedMapping(
        ["E11", "E11.9", "E11.65", "E11.0", "E11.2", "E11.3", "E11.4", "E11.5", "E11.6"],
        "Type 2 Diabetes Mellitus",
        [
            _p("43396009", "SNOMED", "Hemoglobin A1c measurement", "diagnostic", "outpatient", "Standard monitoring every 3-6 months per ADA guidelines"),
            _p("33747003", "SNOMED", "Glucose level measurement", "diagnostic", "both", "Fasting or random glucose for diagnosis and monitoring"),
            _p("271062006", "SNOMED", "Fasting glucose measurement", "diagnostic", "outpatient", "Diagnostic test and ongoing monitoring"),
            _p("698472009", "SNOMED", "Diabetic retinopathy screening", "diagnostic", "outpatient", "Annual dilated eye exam recommended"),
            _p("170747005", "SNOMED", "Diabetic foot examination", "monitoring", "outpatient", "Annual comprehensive foot exam per ADA"),
            _p("428274007", "SNOMED", "Dietary education for type 2 diabetes mellitus", "monitoring", "outpatient", "Medical nutrition therapy, initial and ongoing"),
            _p("385804009", "SNOMED", "Diabetic care education", "monitoring", "outpatient", "Diabetes self-management education and support (DSMES)"),
            _p("313438001", "SNOMED", "Insulin therapy", "therapeutic", "both", "Insulin initiation when oral agents insufficient"),
            _p("4A1DXQZ", "ICD10PCS", "Monitoring glucose, percutaneous", "monitoring", "inpatient", "Inpatient continuous glucose monitoring"),
            _p("G0108", "HCPCS", "Diabetes outpatient self-management training (individual)", "monitoring", "outpatient", "CMS-covered DSMT individual session"),
            _p("G0109", "HCPCS", "Diabetes outpatient self-management training (group)", "monitoring", "outpatient", "CMS-covered DSMT group session"),
            _p("E0607", "HCPCS", "Home blood glucose monitor", "equipment", "outpatient", "DME: blood glucose testing supplies"),
            _p("A4253", "HCPCS", "Blood glucose test strips (50/box)", "equipment", "outpatient", "DME: glucose monitoring supplies"),
            _p("S9140", "HCPCS", "Diabetic management program", "monitoring", "outpatient", "Comprehensive diabetes management"),
        ],
    ),
    CuratedMapping(
        ["I10"],
        "Essential Hypertension",
        [
            _p("46973005", "SNOMED", "Blood pressure taking", "diagnostic", "both", "Routine BP measurement at every visit"),
            _p("43396009", "SNOMED", "Hemoglobin A1c measurement", "diagnostic", "outpatient", "Screen for diabetes comorbidity", 0.7),
            _p("252275004", "SNOMED", "Renal function test", "diagnostic", "outpatient", "Annual BMP/CMP to monitor kidney function"),
            _p("167217005", "SNOMED", "Lipid panel", "diagnostic", "outpatient", "Cardiovascular risk assessment"),
            _p("29303009", "SNOMED", "Electrocardiographic procedure", "diagnostic", "both", "Baseline and periodic ECG for cardiac assessment"),
            _p("40701008", "SNOMED", "Echocardiography", "diagnostic", "outpatient", "Assess for left ventricular hypertrophy"),
            _p("386358003", "SNOMED", "Ambulatory blood pressure monitoring", "monitoring", "outpatient", "24-hour ABPM for diagnosis confirmation"),
            _p("410289001", "SNOMED", "Lifestyle education regarding hypertension", "monitoring", "outpatient", "DASH diet, exercise, sodium reduction counseling"),
            _p("4A02X4Z", "ICD10PCS", "Monitoring arterial pressure, percutaneous", "monitoring", "inpatient", "Inpatient arterial line monitoring"),
            _p("A4670", "HCPCS", "Automatic blood pressure monitor", "equipment", "outpatient", "DME: home BP monitoring device"),
            _p("G0446", "HCPCS", "Intensive behavioral therapy for cardiovascular disease", "monitoring", "outpatient", "Annual CMS-covered CVD counseling"),
        ],
    ),
    CuratedMapping(
        ["E78", "E78.0", "E78.00", "E78.01", "E78.1", "E78.2", "E78.5"],
        "Hyperlipidemia",
        [
            _p("167217005", "SNOMED", "Lipid panel", "diagnostic", "outpatient", "Fasting lipid panel for diagnosis and monitoring"),
            _p("121868005", "SNOMED", "Total cholesterol measurement", "diagnostic", "outpatient", "Screening and monitoring"),
            _p("252275004", "SNOMED", "Renal function test", "diagnostic", "outpatient", "Monitor for statin side effects"),
            _p("269912004", "SNOMED", "Liver function test", "diagnostic", "outpatient", "Baseline and periodic monitoring with statin therapy"),
            _p("410289001", "SNOMED", "Lifestyle education regarding hypertension", "monitoring", "outpatient", "Diet and exercise counseling for CV risk", 0.75),
            _p("G0446", "HCPCS", "Intensive behavioral therapy for cardiovascular disease", "monitoring", "outpatient", "CMS-covered annual CVD counseling"),
        ],
    ),
    CuratedMapping(
        ["F32", "F32.0", "F32.1", "F32.2", "F32.9", "F33", "F33.0", "F33.1", "F33.2", "F33.9"],
        "Major Depressive Disorder",
        [
            _p("165171009", "SNOMED", "Depression screening", "diagnostic", "outpatient", "PHQ-9 or equivalent screening tool"),
            _p("228557008", "SNOMED", "Cognitive behavioral therapy", "therapeutic", "outpatient", "Evidence-based psychotherapy for depression"),
            _p("183381005", "SNOMED", "Medication therapy management", "therapeutic", "outpatient", "Antidepressant initiation and monitoring"),
            _p("413078003", "SNOMED", "Mental health assessment", "diagnostic", "both", "Comprehensive psychiatric evaluation"),
            _p("76746007", "SNOMED", "Cardiovascular risk assessment", "diagnostic", "outpatient", "Screen for CV risk with depression", 0.6),
            _p("GZ13ZZZ", "ICD10PCS", "Individual counseling, mental health", "therapeutic", "inpatient", "Inpatient individual psychotherapy"),
            _p("G0444", "HCPCS", "Annual depression screening (15 min)", "diagnostic", "outpatient", "CMS-covered annual PHQ screening"),
            _p("H0031", "HCPCS", "Mental health assessment by non-physician", "diagnostic", "outpatient", "Behavioral health intake assessment"),
        ],
    ),
    CuratedMapping(
        ["F41", "F41.0", "F41.1", "F41.9"],
        "Generalized Anxiety Disorder",
        [
            _p("413078003", "SNOMED", "Mental health assessment", "diagnostic", "both", "GAD-7 screening and comprehensive evaluation"),
            _p("228557008", "SNOMED", "Cognitive behavioral therapy", "therapeutic", "outpatient", "First-line psychotherapy for anxiety"),
            _p("183381005", "SNOMED", "Medication therapy management", "therapeutic", "outpatient", "SSRI/SNRI initiation and monitoring"),
            _p("H0031", "HCPCS", "Mental health assessment by non-physician", "diagnostic", "outpatient", "Behavioral health intake"),
        ],
    ),
    CuratedMapping(
        ["J44", "J44.0", "J44.1", "J44.9"],
        "Chronic Obstructive Pulmonary Disease",
        [
            _p("127783003", "SNOMED", "Spirometry", "diagnostic", "outpatient", "PFTs for diagnosis and staging (GOLD criteria)"),
            _p("399208008", "SNOMED", "Chest x-ray", "diagnostic", "both", "Rule out pneumonia, assess hyperinflation"),
            _p("252472004", "SNOMED", "Pulse oximetry", "monitoring", "both", "Oxygen saturation monitoring"),
            _p("56251003", "SNOMED", "Pulmonary rehabilitation", "therapeutic", "outpatient", "Exercise training + education for moderate-severe COPD"),
            _p("18580001", "SNOMED", "Nebulizer therapy", "therapeutic", "both", "Bronchodilator delivery for exacerbations"),
            _p("243142003", "SNOMED", "Inhaler technique education", "monitoring", "outpatient", "Proper MDI/DPI usage instruction"),
            _p("BB03ZZZ", "ICD10PCS", "Plain radiography of lungs", "diagnostic", "inpatient", "Inpatient chest imaging"),
            _p("E0424", "HCPCS", "Stationary compressed gas oxygen system", "equipment", "outpatient", "DME: home oxygen for chronic hypoxemia"),
            _p("E0431", "HCPCS", "Portable gaseous oxygen system", "equipment", "outpatient", "DME: portable oxygen for ambulation"),
            _p("E0570", "HCPCS", "Nebulizer with compressor", "equipment", "outpatient", "DME: home nebulizer system"),
            _p("G0424", "HCPCS", "Pulmonary rehabilitation (per session)", "therapeutic", "outpatient", "CMS-covered pulmonary rehab"),
            _p("94060", "HCPCS", "Bronchodilator responsiveness spirometry", "diagnostic", "outpatient", "Pre/post bronchodilator PFTs"),
        ],
    ),
    CuratedMapping(
        ["J45", "J45.2", "J45.3", "J45.4", "J45.5", "J45.9", "J45.20", "J45.30", "J45.40", "J45.50"],
        "Asthma",
        [
            _p("127783003", "SNOMED", "Spirometry", "diagnostic", "outpatient", "PFTs for diagnosis and severity classification"),
            _p("252472004", "SNOMED", "Pulse oximetry", "monitoring", "both", "Oxygen saturation during exacerbations"),
            _p("710818004", "SNOMED", "Peak expiratory flow rate measurement", "monitoring", "outpatient", "Home PEF monitoring for asthma control"),
            _p("243142003", "SNOMED", "Inhaler technique education", "monitoring", "outpatient", "Proper inhaler technique review at every visit"),
            _p("182836005", "SNOMED", "Asthma management plan review", "monitoring", "outpatient", "Action plan review and update"),
            _p("18580001", "SNOMED", "Nebulizer therapy", "therapeutic", "both", "Acute bronchodilator delivery"),
            _p("E0570", "HCPCS", "Nebulizer with compressor", "equipment", "outpatient", "DME: home nebulizer"),
        ],
    ),
    CuratedMapping(
        ["I50", "I50.1", "I50.2", "I50.3", "I50.4", "I50.9", "I50.20", "I50.22", "I50.30", "I50.32", "I50.40", "I50.42"],
        "Heart Failure",
        [
            _p("40701008", "SNOMED", "Echocardiography", "diagnostic", "both", "Assess ejection fraction and cardiac function"),
            _p("29303009", "SNOMED", "Electrocardiographic procedure", "diagnostic", "both", "Baseline ECG and rhythm monitoring"),
            _p("399208008", "SNOMED", "Chest x-ray", "diagnostic", "both", "Assess for pulmonary congestion/edema"),
            _p("167217005", "SNOMED", "Lipid panel", "diagnostic", "outpatient", "Cardiovascular risk factor monitoring", 0.7),
            _p("252275004", "SNOMED", "Renal function test", "monitoring", "both", "BMP for electrolytes, creatinine with diuretics"),
            _p("80146002", "SNOMED", "BNP measurement", "diagnostic", "both", "BNP/NT-proBNP for diagnosis and prognosis"),
            _p("252472004", "SNOMED", "Pulse oximetry", "monitoring", "both", "Oxygen saturation monitoring"),
            _p("229065009", "SNOMED", "Cardiac rehabilitation", "therapeutic", "outpatient", "Exercise-based rehab for stable HF"),
            _p("02HK3MZ", "ICD10PCS", "Insertion of cardiac lead into right ventricle", "therapeutic", "inpatient", "ICD/CRT device implantation"),
            _p("G0422", "HCPCS", "Cardiac rehabilitation (per session)", "therapeutic", "outpatient", "CMS-covered cardiac rehab"),
            _p("E0607", "HCPCS", "Home blood glucose monitor", "equipment", "outpatient", "Weight/symptom monitoring device", 0.5),
        ],
    ),
    CuratedMapping(
        ["I48", "I48.0", "I48.1", "I48.2", "I48.9", "I48.91"],
        "Atrial Fibrillation",
        [
            _p("29303009", "SNOMED", "Electrocardiographic procedure", "diagnostic", "both", "12-lead ECG for rhythm documentation"),
            _p("40701008", "SNOMED", "Echocardiography", "diagnostic", "both", "Assess for structural heart disease, LA size"),
            _p("268400002", "SNOMED", "Holter monitor", "monitoring", "outpatient", "24-48hr ambulatory rhythm monitoring"),
            _p("252275004", "SNOMED", "Renal function test", "monitoring", "outpatient", "CrCl for anticoagulant dosing"),
            _p("167217005", "SNOMED", "Lipid panel", "diagnostic", "outpatient", "CV risk factor assessment", 0.6),
            _p("175095005", "SNOMED", "Cardiac catheter ablation", "therapeutic", "inpatient", "Pulmonary vein isolation for AF"),
            _p("308489006", "SNOMED", "Electrical cardioversion", "therapeutic", "inpatient", "Rhythm restoration for persistent AF"),
            _p("02583ZZ", "ICD10PCS", "Destruction of cardiac conduction mechanism", "therapeutic", "inpatient", "Catheter ablation procedure"),
            _p("G0422", "HCPCS", "Cardiac rehabilitation (per session)", "therapeutic", "outpatient", "Post-ablation cardiac rehab", 0.65),
        ],
    ),
    CuratedMapping(
        ["I25", "I25.1", "I25.10", "I25.11", "I25.7", "I25.9"],
        "Coronary Artery Disease",
        [
            _p("29303009", "SNOMED", "Electrocardiographic procedure", "diagnostic", "both", "Baseline and stress ECG"),
            _p("40701008", "SNOMED", "Echocardiography", "diagnostic", "both", "Assess cardiac function, wall motion"),
            _p("167217005", "SNOMED", "Lipid panel", "monitoring", "outpatient", "Lipid monitoring on statin therapy"),
            _p("399208008", "SNOMED", "Chest x-ray", "diagnostic", "both", "Baseline cardiac silhouette"),
            _p("73761001", "SNOMED", "Coronary angiography", "diagnostic", "inpatient", "Definitive assessment of coronary stenosis"),
            _p("232717009", "SNOMED", "Coronary artery bypass graft", "therapeutic", "inpatient", "Surgical revascularization"),
            _p("415070008", "SNOMED", "Percutaneous coronary intervention", "therapeutic", "inpatient", "Angioplasty and stent placement"),
            _p("229065009", "SNOMED", "Cardiac rehabilitation", "therapeutic", "outpatient", "Post-ACS/post-revascularization rehab"),
            _p("0270346", "ICD10PCS", "Dilation of coronary artery with drug-eluting stent", "therapeutic", "inpatient", "PCI with DES"),
            _p("G0422", "HCPCS", "Cardiac rehabilitation (per session)", "therapeutic", "outpatient", "CMS-covered 36-session cardiac rehab program"),
        ],
    ),
    CuratedMapping(
        ["N18", "N18.1", "N18.2", "N18.3", "N18.30", "N18.31", "N18.32", "N18.4", "N18.5", "N18.6", "N18.9"],
        "Chronic Kidney Disease",
        [
            _p("252275004", "SNOMED", "Renal function test", "monitoring", "both", "GFR, creatinine, BUN — quarterly monitoring"),
            _p("275711006", "SNOMED", "Serum electrolyte measurement", "monitoring", "both", "Potassium, calcium, phosphorus monitoring"),
            _p("167217005", "SNOMED", "Lipid panel", "monitoring", "outpatient", "CV risk assessment in CKD"),
            _p("271040005", "SNOMED", "Urine albumin test", "diagnostic", "outpatient", "UACR for staging and progression monitoring"),
            _p("399208008", "SNOMED", "Chest x-ray", "diagnostic", "both", "Assess for fluid overload"),
            _p("108241001", "SNOMED", "Dialysis procedure", "therapeutic", "both", "Hemodialysis or peritoneal dialysis for ESRD"),
            _p("70536003", "SNOMED", "Renal transplant", "therapeutic", "inpatient", "Kidney transplantation for ESRD"),
            _p("428274007", "SNOMED", "Dietary education for type 2 diabetes mellitus", "monitoring", "outpatient", "Renal diet counseling (low protein, low sodium)", 0.6),
            _p("G0257", "HCPCS", "Unscheduled dialysis service", "therapeutic", "outpatient", "Emergency or extra dialysis session"),
        ],
    ),
    CuratedMapping(
        ["M54.5", "M54.50", "M54.51", "M54.59"],
        "Low Back Pain",
        [
            _p("363680008", "SNOMED", "Radiographic imaging of spine", "diagnostic", "both", "X-ray for red flag screening"),
            _p("241601008", "SNOMED", "MRI of lumbar spine", "diagnostic", "outpatient", "MRI for persistent/radicular symptoms"),
            _p("91251008", "SNOMED", "Physical therapy procedure", "therapeutic", "outpatient", "Core strengthening, McKenzie method, manual therapy"),
            _p("231249005", "SNOMED", "Epidural steroid injection", "therapeutic", "outpatient", "Pain management for radiculopathy"),
            _p("G0283", "HCPCS", "Electrical stimulation (unattended)", "therapeutic", "outpatient", "TENS therapy for chronic pain"),
            _p("E0730", "HCPCS", "TENS device (4 lead)", "equipment", "outpatient", "DME: transcutaneous nerve stimulator"),
            _p("97110", "HCPCS", "Therapeutic exercise (15 min)", "therapeutic", "outpatient", "PT therapeutic exercises"),
        ],
    ),
    CuratedMapping(
        ["M17", "M17.0", "M17.1", "M17.9", "M16", "M16.0", "M16.1", "M16.9", "M19", "M19.9"],
        "Osteoarthritis",
        [
            _p("363680008", "SNOMED", "Radiographic imaging", "diagnostic", "outpatient", "Weight-bearing X-ray of affected joint"),
            _p("241601008", "SNOMED", "MRI of joint", "diagnostic", "outpatient", "MRI for pre-surgical planning"),
            _p("91251008", "SNOMED", "Physical therapy procedure", "therapeutic", "outpatient", "Strengthening, ROM, aquatic therapy"),
            _p("274031008", "SNOMED", "Intra-articular injection", "therapeutic", "outpatient", "Corticosteroid or hyaluronic acid injection"),
            _p("179344006", "SNOMED", "Total knee replacement", "therapeutic", "inpatient", "TKA for severe knee OA"),
            _p("179406003", "SNOMED", "Total hip replacement", "therapeutic", "inpatient", "THA for severe hip OA"),
            _p("0SRC0J9", "ICD10PCS", "Replacement of right knee joint with synthetic substitute", "therapeutic", "inpatient", "Total knee arthroplasty"),
            _p("E1399", "HCPCS", "Durable medical equipment (miscellaneous)", "equipment", "outpatient", "DME: knee brace, walker, cane"),
        ],
    ),
    CuratedMapping(
        ["E03", "E03.9", "E03.8"],
        "Hypothyroidism",
        [
            _p("61167004", "SNOMED", "Thyroid stimulating hormone measurement", "diagnostic", "outpatient", "TSH for diagnosis and dose titration"),
            _p("166312007", "SNOMED", "Free T4 level measurement", "diagnostic", "outpatient", "Free T4 for diagnosis and monitoring"),
            _p("167217005", "SNOMED", "Lipid panel", "monitoring", "outpatient", "Lipid monitoring — hypothyroidism affects cholesterol", 0.7),
        ],
    ),
    CuratedMapping(
        ["K21", "K21.0", "K21.9"],
        "Gastroesophageal Reflux Disease",
        [
            _p("28163009", "SNOMED", "Upper GI endoscopy", "diagnostic", "outpatient", "EGD for persistent symptoms, Barrett screening"),
            _p("252160004", "SNOMED", "Esophageal pH monitoring", "diagnostic", "outpatient", "24-48hr pH study for refractory GERD"),
            _p("252148004", "SNOMED", "Esophageal manometry", "diagnostic", "outpatient", "Motility testing pre-surgical evaluation"),
            _p("44337009", "SNOMED", "Fundoplication", "therapeutic", "inpatient", "Anti-reflux surgery for refractory GERD"),
            _p("399208008", "SNOMED", "Chest x-ray", "diagnostic", "both", "Rule out other causes of chest pain", 0.5),
        ],
    ),
    CuratedMapping(
        ["E66", "E66.0", "E66.01", "E66.09", "E66.1", "E66.9"],
        "Obesity",
        [
            _p("43396009", "SNOMED", "Hemoglobin A1c measurement", "diagnostic", "outpatient", "Screen for pre-diabetes/diabetes"),
            _p("167217005", "SNOMED", "Lipid panel", "diagnostic", "outpatient", "CV risk assessment with obesity"),
            _p("269912004", "SNOMED", "Liver function test", "diagnostic", "outpatient", "Screen for NAFLD/NASH"),
            _p("252275004", "SNOMED", "Renal function test", "diagnostic", "outpatient", "Metabolic panel baseline"),
            _p("61167004", "SNOMED", "Thyroid stimulating hormone measurement", "diagnostic", "outpatient", "Rule out hypothyroidism"),
            _p("304549008", "SNOMED", "Bariatric surgery", "therapeutic", "inpatient", "Surgical weight loss for BMI ≥40 or ≥35 with comorbidities"),
            _p("G0447", "HCPCS", "Intensive behavioral therapy for obesity (15 min)", "monitoring", "outpatient", "CMS-covered obesity counseling"),
            _p("G0473", "HCPCS", "Behavioral counseling for obesity (group)", "monitoring", "outpatient", "Group behavioral therapy session"),
        ],
    ),
    CuratedMapping(
        ["E10", "E10.9", "E10.65", "E10.1", "E10.2", "E10.3", "E10.4", "E10.5", "E10.6"],
        "Type 1 Diabetes Mellitus",
        [
            _p("43396009", "SNOMED", "Hemoglobin A1c measurement", "diagnostic", "outpatient", "HbA1c every 3 months per ADA"),
            _p("33747003", "SNOMED", "Glucose level measurement", "diagnostic", "both", "Blood glucose monitoring"),
            _p("698472009", "SNOMED", "Diabetic retinopathy screening", "diagnostic", "outpatient", "Annual dilated eye exam"),
            _p("170747005", "SNOMED", "Diabetic foot examination", "monitoring", "outpatient", "Annual comprehensive foot exam"),
            _p("313438001", "SNOMED", "Insulin therapy", "therapeutic", "both", "Basal-bolus insulin regimen"),
            _p("E0784", "HCPCS", "External ambulatory insulin delivery system (insulin pump)", "equipment", "outpatient", "DME: insulin pump"),
            _p("A4226", "HCPCS", "Supplies for insulin pump maintenance", "equipment", "outpatient", "DME: pump supplies"),
            _p("E2102", "HCPCS", "Continuous glucose monitoring receiver", "equipment", "outpatient", "DME: CGM system"),
            _p("G0108", "HCPCS", "Diabetes outpatient self-management training (individual)", "monitoring", "outpatient", "DSMT for T1DM management"),
        ],
    ),
    CuratedMapping(
        ["N39.0"],
        "Urinary Tract Infection",
        [
            _p("167217005", "SNOMED", "Urinalysis", "diagnostic", "both", "Dipstick and microscopic UA"),
            _p("117010004", "SNOMED", "Urine culture", "diagnostic", "both", "Culture and sensitivity for targeted antibiotics"),
            _p("252275004", "SNOMED", "Renal function test", "diagnostic", "both", "BMP if pyelonephritis suspected", 0.6),
            _p("77477000", "SNOMED", "CT abdomen/pelvis", "diagnostic", "both", "CT for complicated UTI / pyelonephritis", 0.5),
        ],
    ),
    CuratedMapping(
        ["J18", "J18.9", "J18.1", "J13", "J15", "J15.9"],
        "Pneumonia",
        [
            _p("399208008", "SNOMED", "Chest x-ray", "diagnostic", "both", "PA and lateral CXR for diagnosis"),
            _p("252472004", "SNOMED", "Pulse oximetry", "monitoring", "both", "Oxygen saturation assessment"),
            _p("104177005", "SNOMED", "Blood culture", "diagnostic", "inpatient", "Blood cultures before antibiotics for inpatient pneumonia"),
            _p("117010004", "SNOMED", "Sputum culture", "diagnostic", "both", "Sputum gram stain and culture"),
            _p("252275004", "SNOMED", "Renal function test", "monitoring", "inpatient", "BMP for monitoring, CURB-65 scoring"),
            _p("BB03ZZZ", "ICD10PCS", "Plain radiography of lungs", "diagnostic", "inpatient", "Inpatient chest X-ray"),
            _p("G0009", "HCPCS", "Pneumococcal vaccine administration", "therapeutic", "outpatient", "Prevention: PCV13 or PPSV23 vaccination"),
        ],
    ),
    CuratedMapping(
        ["D50", "D50.0", "D50.9"],
        "Iron Deficiency Anemia",
        [
            _p("26604007", "SNOMED", "Complete blood count", "diagnostic", "both", "CBC with differential for diagnosis"),
            _p("269996001", "SNOMED", "Iron studies", "diagnostic", "outpatient", "Serum iron, TIBC, ferritin"),
            _p("271040005", "SNOMED", "Reticulocyte count", "monitoring", "outpatient", "Monitor response to iron therapy"),
            _p("28163009", "SNOMED", "Upper GI endoscopy", "diagnostic", "outpatient", "EGD to identify GI bleeding source", 0.7),
            _p("73761001", "SNOMED", "Colonoscopy", "diagnostic", "outpatient", "Colonoscopy to rule out GI malignancy/bleeding", 0.7),
            _p("J1756", "HCPCS", "Iron sucrose injection (1 mg)", "therapeutic", "both", "IV iron infusion for refractory oral iron"),
        ],
    ),
    CuratedMapping(
        ["E55", "E55.9"],
        "Vitamin D Deficiency",
        [
            _p("271049002", "SNOMED", "25-hydroxyvitamin D measurement", "diagnostic", "outpatient", "Serum 25(OH)D level for diagnosis"),
            _p("271254000", "SNOMED", "Serum calcium measurement", "monitoring", "outpatient", "Monitor calcium with supplementation"),
        ],
    ),
    CuratedMapping(
        ["G47.33", "G47.30", "G47.3"],
        "Obstructive Sleep Apnea",
        [
            _p("60554003", "SNOMED", "Polysomnography", "diagnostic", "outpatient", "Overnight sleep study for diagnosis and severity"),
            _p("252472004", "SNOMED", "Pulse oximetry", "monitoring", "outpatient", "Overnight pulse ox screening"),
            _p("E0601", "HCPCS", "CPAP device", "equipment", "outpatient", "DME: continuous positive airway pressure machine"),
            _p("A7030", "HCPCS", "CPAP full face mask", "equipment", "outpatient", "DME: CPAP mask and interface"),
            _p("E0562", "HCPCS", "Humidifier for CPAP", "equipment", "outpatient", "DME: heated humidifier"),
        ],
    ),
    CuratedMapping(
        ["I21", "I21.0", "I21.1", "I21.2", "I21.3", "I21.4", "I21.9"],
        "Acute Myocardial Infarction",
        [
            _p("29303009", "SNOMED", "Electrocardiographic procedure", "diagnostic", "inpatient", "Stat 12-lead ECG within 10 minutes"),
            _p("105000003", "SNOMED", "Troponin measurement", "diagnostic", "inpatient", "Serial troponin I or T (0h, 3h, 6h)"),
            _p("73761001", "SNOMED", "Coronary angiography", "diagnostic", "inpatient", "Emergent cath for STEMI, urgent for NSTEMI"),
            _p("415070008", "SNOMED", "Percutaneous coronary intervention", "therapeutic", "inpatient", "Primary PCI for STEMI"),
            _p("40701008", "SNOMED", "Echocardiography", "diagnostic", "inpatient", "Assess EF and wall motion post-MI"),
            _p("229065009", "SNOMED", "Cardiac rehabilitation", "therapeutic", "outpatient", "Phase I-III cardiac rehab post-MI"),
            _p("G0422", "HCPCS", "Cardiac rehabilitation (per session)", "therapeutic", "outpatient", "CMS-covered cardiac rehab 36 sessions"),
        ],
    ),
    CuratedMapping(
        ["I63", "I63.9", "I63.5", "I63.3", "I61", "I61.9"],
        "Cerebrovascular Accident (Stroke)",
        [
            _p("77477000", "SNOMED", "CT of head", "diagnostic", "inpatient", "Non-contrast head CT to rule out hemorrhage"),
            _p("241601008", "SNOMED", "MRI of brain", "diagnostic", "inpatient", "Diffusion-weighted MRI for acute ischemia"),
            _p("399208008", "SNOMED", "Carotid ultrasound", "diagnostic", "both", "Carotid duplex for extracranial stenosis"),
            _p("40701008", "SNOMED", "Echocardiography", "diagnostic", "inpatient", "TTE/TEE for cardioembolic source"),
            _p("29303009", "SNOMED", "Electrocardiographic procedure", "diagnostic", "inpatient", "ECG for atrial fibrillation detection"),
            _p("91251008", "SNOMED", "Physical therapy procedure", "therapeutic", "both", "Post-stroke motor rehabilitation"),
            _p("278414003", "SNOMED", "Speech therapy", "therapeutic", "both", "Speech-language pathology for aphasia/dysarthria"),
        ],
    ),
    CuratedMapping(
        ["C50", "C50.9", "C50.91", "C50.92", "C50.01", "C50.02", "C50.1", "C50.2", "C50.3", "C50.4", "C50.5", "C50.6"],
        "Breast Cancer",
        [
            _p("71651007", "SNOMED", "Mammography", "diagnostic", "outpatient", "Diagnostic mammogram + screening"),
            _p("241615005", "SNOMED", "MRI of breast", "diagnostic", "outpatient", "Breast MRI for high-risk or staging"),
            _p("122548005", "SNOMED", "Breast biopsy", "diagnostic", "outpatient", "Core needle biopsy for tissue diagnosis"),
            _p("392021009", "SNOMED", "Lumpectomy", "therapeutic", "inpatient", "Breast-conserving surgery"),
            _p("172043006", "SNOMED", "Mastectomy", "therapeutic", "inpatient", "Total or radical mastectomy"),
            _p("367336001", "SNOMED", "Chemotherapy", "therapeutic", "both", "Systemic chemotherapy per NCCN guidelines"),
            _p("108290001", "SNOMED", "Radiation therapy", "therapeutic", "outpatient", "Post-lumpectomy radiation"),
            _p("G0202", "HCPCS", "Screening mammography (digital)", "diagnostic", "outpatient", "CMS-covered annual mammogram"),
        ],
    ),
    CuratedMapping(
        ["C34", "C34.9", "C34.90", "C34.91", "C34.92", "C34.1", "C34.2", "C34.3"],
        "Lung Cancer",
        [
            _p("399208008", "SNOMED", "Chest x-ray", "diagnostic", "both", "Initial CXR for suspected lung mass"),
            _p("77477000", "SNOMED", "CT of chest", "diagnostic", "both", "CT chest with contrast for staging"),
            _p("241601008", "SNOMED", "PET-CT scan", "diagnostic", "outpatient", "PET/CT for staging and metastasis evaluation"),
            _p("122548005", "SNOMED", "Lung biopsy", "diagnostic", "both", "CT-guided or bronchoscopic biopsy"),
            _p("127783003", "SNOMED", "Spirometry", "diagnostic", "outpatient", "PFTs for surgical candidacy"),
            _p("367336001", "SNOMED", "Chemotherapy", "therapeutic", "both", "Systemic therapy per NCCN guidelines"),
            _p("108290001", "SNOMED", "Radiation therapy", "therapeutic", "outpatient", "SBRT, IMRT, or conventional radiation"),
            _p("G0296", "HCPCS", "Low-dose CT lung cancer screening", "diagnostic", "outpatient", "CMS-covered LDCT for eligible patients"),
        ],
    ),
    CuratedMapping(
        ["C18", "C18.9", "C19", "C20"],
        "Colorectal Cancer",
        [
            _p("73761001", "SNOMED", "Colonoscopy", "diagnostic", "both", "Diagnostic colonoscopy for staging/biopsy"),
            _p("77477000", "SNOMED", "CT of abdomen and pelvis", "diagnostic", "both", "CT A/P for staging"),
            _p("367336001", "SNOMED", "Chemotherapy", "therapeutic", "both", "FOLFOX, CAPOX per NCCN"),
            _p("108290001", "SNOMED", "Radiation therapy", "therapeutic", "outpatient", "Neoadjuvant radiation for rectal cancer"),
            _p("174033005", "SNOMED", "Colectomy", "therapeutic", "inpatient", "Partial or total colectomy"),
            _p("G0121", "HCPCS", "Colorectal cancer screening colonoscopy (high risk)", "diagnostic", "outpatient", "CMS-covered screening"),
        ],
    ),
    CuratedMapping(
        ["N40", "N40.0", "N40.1"],
        "Benign Prostatic Hyperplasia",
        [
            _p("63476009", "SNOMED", "PSA measurement", "diagnostic", "outpatient", "Prostate-specific antigen screening"),
            _p("27171005", "SNOMED", "Urinalysis", "diagnostic", "outpatient", "UA to rule out UTI"),
            _p("252275004", "SNOMED", "Renal function test", "monitoring", "outpatient", "BMP for urinary retention impact"),
            _p("386736004", "SNOMED", "Uroflowmetry", "diagnostic", "outpatient", "Measure urinary flow rate"),
            _p("252160004", "SNOMED", "Post-void residual measurement", "diagnostic", "outpatient", "Bladder ultrasound for PVR"),
            _p("176258007", "SNOMED", "Transurethral resection of prostate", "therapeutic", "inpatient", "TURP for moderate-severe BPH"),
        ],
    ),
    CuratedMapping(
        ["M05", "M05.9", "M06", "M06.0", "M06.9"],
        "Rheumatoid Arthritis",
        [
            _p("26604007", "SNOMED", "Complete blood count", "monitoring", "outpatient", "CBC for baseline and DMARD monitoring"),
            _p("269912004", "SNOMED", "Liver function test", "monitoring", "outpatient", "LFTs with methotrexate therapy"),
            _p("252275004", "SNOMED", "Renal function test", "monitoring", "outpatient", "BMP for DMARD monitoring"),
            _p("363680008", "SNOMED", "Radiographic imaging", "diagnostic", "outpatient", "X-ray of affected joints for erosive disease"),
            _p("91251008", "SNOMED", "Physical therapy procedure", "therapeutic", "outpatient", "Joint protection and ROM exercises"),
            _p("J0135", "HCPCS", "Adalimumab injection (20 mg)", "therapeutic", "outpatient", "Biologic DMARD administration"),
        ],
    ),
    CuratedMapping(
        ["G40", "G40.9", "G40.90", "G40.91", "G40.0", "G40.1", "G40.2", "G40.3", "G40.5"],
        "Epilepsy",
        [
            _p("54550000", "SNOMED", "Electroencephalography", "diagnostic", "both", "EEG for seizure characterization"),
            _p("241601008", "SNOMED", "MRI of brain", "diagnostic", "outpatient", "Brain MRI for structural cause identification"),
            _p("183381005", "SNOMED", "Medication therapy management", "therapeutic", "outpatient", "Anti-epileptic drug monitoring and titration"),
            _p("269912004", "SNOMED", "Liver function test", "monitoring", "outpatient", "Monitor hepatotoxicity with AEDs"),
            _p("26604007", "SNOMED", "Complete blood count", "monitoring", "outpatient", "CBC monitoring with AEDs"),
        ],
    ),
]

_code_index: dict[str, CuratedMapping] = {
    code.upper(): mapping for mapping in CURATED_MAPPINGS for code in mapping.icd10_codes
}


def _find_mapping(icd10_code: str) -> Optional[CuratedMapping]:
    """Exact code first, then ever-shorter parents: E11.312 -> E11.31 -> E11.3."""
    code = icd10_code.strip().upper()
    if code in _code_index:
        return _code_index[code]
    while len(code) > 2:
        code = code[:-1].rstrip(".")
        if code in _code_index:
            return _code_index[code]
    return None


def get_curated_procedures(icd10_code: str) -> list[dict]:
    mapping = _find_mapping(icd10_code)
    return [p.to_dict() for p in mapping.procedures] if mapping else []


def get_curated_condition_name(icd10_code: str) -> Optional[str]:
    mapping = _find_mapping(icd10_code)
    return mapping.condition_name if mapping else None


def get_all_curated_conditions() -> list[str]:
    return sorted({mapping.condition_name for mapping in CURATED_MAPPINGS})
