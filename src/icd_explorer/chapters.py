"""ICD-10-CM chapter classification (21 chapters plus an Unknown bucket)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ChapterInfo:
    id: int
    name: str
    short_name: str
    code_range: str
    color: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "shortName": self.short_name,
            "codeRange": self.code_range,
            "color": self.color,
        }


ICD10_CHAPTERS: tuple[ChapterInfo, ...] = (
    ChapterInfo(0, "Unknown Category", "Unknown", "---", "gray"),
    ChapterInfo(1, "Certain Infectious and Parasitic Diseases", "Infectious", "A00-B99", "red"),
    ChapterInfo(2, "Neoplasms", "Neoplasms", "C00-D49", "pink"),
    ChapterInfo(3, "Diseases of the Blood and Blood-forming Organs", "Blood", "D50-D89", "rose"),
    ChapterInfo(4, "Endocrine, Nutritional and Metabolic Diseases", "Endocrine", "E00-E89", "emerald"),
    ChapterInfo(5, "Mental, Behavioral and Neurodevelopmental Disorders", "Mental", "F01-F99", "violet"),
    ChapterInfo(6, "Diseases of the Nervous System", "Nervous", "G00-G99", "purple"),
    ChapterInfo(7, "Diseases of the Eye and Adnexa", "Eye", "H00-H59", "cyan"),
    ChapterInfo(8, "Diseases of the Ear and Mastoid Process", "Ear", "H60-H95", "teal"),
    ChapterInfo(9, "Diseases of the Circulatory System", "Circulatory", "I00-I99", "red"),
    ChapterInfo(10, "Diseases of the Respiratory System", "Respiratory", "J00-J99", "sky"),
    ChapterInfo(11, "Diseases of the Digestive System", "Digestive", "K00-K95", "amber"),
    ChapterInfo(12, "Diseases of the Skin and Subcutaneous Tissue", "Skin", "L00-L99", "orange"),
    ChapterInfo(
        13, "Diseases of the Musculoskeletal System and Connective Tissue", "Musculoskeletal", "M00-M99", "lime"
    ),
    ChapterInfo(14, "Diseases of the Genitourinary System", "Genitourinary", "N00-N99", "fuchsia"),
    ChapterInfo(15, "Pregnancy, Childbirth and the Puerperium", "Pregnancy", "O00-O9A", "pink"),
    ChapterInfo(16, "Certain Conditions Originating in the Perinatal Period", "Perinatal", "P00-P96", "blue"),
    ChapterInfo(
        17, "Congenital Malformations, Deformations and Chromosomal Abnormalities", "Congenital", "Q00-Q99", "indigo"
    ),
    ChapterInfo(
        18, "Symptoms, Signs and Abnormal Clinical and Laboratory Findings", "Symptoms", "R00-R99", "slate"
    ),
    ChapterInfo(
        19, "Injury, Poisoning and Certain Other Consequences of External Causes", "Injuries", "S00-T88", "yellow"
    ),
    ChapterInfo(20, "External Causes of Morbidity", "External Causes", "V00-Y99", "gray"),
    ChapterInfo(
        21, "Factors Influencing Health Status and Contact with Health Services", "Health Factors", "Z00-Z99", "green"
    ),
)

# First letter -> chapter id. D and H are split by the two-digit category.
_LETTER_TO_CHAPTER = {
    "A": 1, "B": 1, "C": 2, "E": 4, "F": 5, "G": 6, "I": 9, "J": 10,
    "K": 11, "L": 12, "M": 13, "N": 14, "O": 15, "P": 16, "Q": 17, "R": 18,
    "S": 19, "T": 19, "V": 20, "W": 20, "X": 20, "Y": 20, "Z": 21,
}


def _category_number(code: str) -> int:
    digits = "".join(ch for ch in code[1:3] if ch.isdigit())
    return int(digits) if digits else 0


def get_chapter(code: str) -> ChapterInfo:
    """Resolve the chapter for an ICD-10 code; unknown input maps to chapter 0."""
    if not code or not isinstance(code, str):
        return ICD10_CHAPTERS[0]

    letter = code[0].upper()
    if letter == "D":
        return ICD10_CHAPTERS[2] if _category_number(code) < 50 else ICD10_CHAPTERS[3]
    if letter == "H":
        return ICD10_CHAPTERS[7] if _category_number(code) < 60 else ICD10_CHAPTERS[8]
    return ICD10_CHAPTERS[_LETTER_TO_CHAPTER.get(letter, 0)]


def get_chapter_by_id(chapter_id: int) -> ChapterInfo:
    if 0 <= chapter_id < len(ICD10_CHAPTERS):
        return ICD10_CHAPTERS[chapter_id]
    return ICD10_CHAPTERS[0]


def get_all_chapters() -> list[ChapterInfo]:
    return list(ICD10_CHAPTERS[1:])


def is_in_chapter(code: str, chapter_id: int) -> bool:
    return get_chapter(code).id == chapter_id
