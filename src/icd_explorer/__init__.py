"""
ICD Explorer

ICD-10-CM lookup service built on Azure Functions. Exposes diagnosis search
with lay-term translation and relevance ranking, plus related lookups:
- Drugs (RxNorm, RxClass, OpenFDA, AI relevance validation)
- Clinical trials (ClinicalTrials.gov)
- Medicare coverage (CMS NCD/LCD)
- Procedures (SNOMED CT via UMLS, HCPCS Level II)
"""

__version__ = "0.1.0"
