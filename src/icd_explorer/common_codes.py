"""
Usage-frequency data for common ICD-10-CM codes.

Popularity values are relative (0-100, I10 hypertension = 100) and drawn from
primary care utilization and Medicare claims volume. Codes not listed fall
back to family credit or the base score in ``scoring``.
"""

# ============================================================================
# Top common codes
# ============================================================================

TOP_COMMON_CODES: dict[str, int] = {
    # Tier 1: top 10 diagnoses
    "I10": 100,
    "Z00.00": 95,
    "Z00.01": 93,
    "Z23": 92,
    "E78.5": 91,
    "E11.9": 90,
    "E78.2": 89,
    "E78.0": 88,
    "E11.65": 85,
    "E03.9": 84,
    # Tier 2: very common
    "K21.9": 82,
    "K21.0": 75,
    "K58.9": 70,
    "K29.70": 65,
    "F41.1": 80,
    "F32.9": 79,
    "F32.1": 74,
    "F41.9": 73,
    "F43.10": 68,
    "M54.5": 78,
    "M54.50": 77,
    "M25.50": 72,
    "M17.9": 71,
    "M19.90": 67,
    "M79.3": 64,
    "J06.9": 76,
    "J02.9": 73,
    "J00": 71,
    "J20.9": 69,
    "J45.909": 75,
    "J45.20": 70,
    "J44.9": 68,
    "J30.9": 65,
    "I25.10": 74,
    "I50.9": 72,
    "I48.91": 70,
    "I48.0": 66,
    "I21.9": 65,
    "I21.3": 63,
    "I21.4": 64,
    "N39.0": 73,
    "B34.9": 66,
    "J18.9": 64,
    # Tier 3: common
    "E11.8": 62,
    "E11.21": 60,
    "E11.22": 58,
    "E11.40": 56,
    "E11.42": 55,
    "E10.9": 68,
    "E10.65": 62,
    "E66.9": 67,
    "E66.01": 64,
    "E55.9": 62,
    "E63.9": 55,
    "G47.33": 66,
    "G47.00": 58,
    "G43.909": 63,
    "R51.9": 60,
    "G43.009": 58,
    "L03.90": 58,
    "L20.9": 55,
    "L30.9": 52,
    "R07.9": 60,
    "R10.9": 58,
    "R53.83": 56,
    "R63.4": 52,
    "N18.3": 62,
    "N18.9": 58,
    # Tier 4: moderately common
    "E13.9": 45,
    "E08.9": 40,
    "I11.9": 55,
    "I12.9": 50,
    "I13.10": 45,
    "I20.9": 48,
    "I25.9": 46,
    "I63.9": 44,
    "F90.9": 52,
    "F90.0": 48,
    "F90.2": 50,
    "F17.210": 55,
    "F10.20": 45,
    "F11.20": 48,
    "Z12.31": 50,
    "Z12.11": 48,
    "Z13.6": 46,
    # Tier 5: less common but notable
    "G20": 35,
    "G35": 32,
    "G40.909": 38,
    "M05.79": 30,
    "M06.9": 35,
    "K50.90": 32,
    "K51.90": 32,
    "L40.9": 35,
    "J45.50": 40,
    "Z85.3": 30,
    "Z80.3": 28,
    "C50.919": 25,
    "Z00.129": 55,
    "J06.0": 50,
    "H66.90": 45,
}

# ============================================================================
# Common code families (partial popularity credit)
# ============================================================================

COMMON_CODE_FAMILIES: frozenset[str] = frozenset(
    {
        # Endocrine / metabolic
        "E11", "E10", "E78", "E03", "E66", "E55",
        # Cardiovascular
        "I10", "I11", "I25", "I50", "I48", "I21", "I63",
        # Respiratory
        "J06", "J45", "J44", "J20", "J18",
        # Gastrointestinal
        "K21", "K58", "K29",
        # Mental health
        "F32", "F41", "F43", "F90",
        # Musculoskeletal
        "M54", "M17", "M25", "M79",
        # Other
        "N39", "G47", "G43", "Z00", "Z23",
    }
)


def get_code_family(code: str) -> str:
    """Category prefix before the decimal, e.g. ``E11.65`` -> ``E11``."""
    return code.split(".")[0]
