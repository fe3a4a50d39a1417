"""
Terminology matching.

Resolves free-text drug, condition and allergen tokens against the patterns
used in the knowledge base. Matching favors recall: a missed interaction is
worse than a spurious one, so any of the three strategies succeeding is a
match:

1. exact equality after normalization
2. containment in either direction
3. class / synonym membership when the pattern is a known class key

Tokens are normalized by lowercasing, trimming and treating "_" and "-" as
spaces, so "ckd_stage_4_5" and "CKD stage 4-5" are the same token.
"""
import re
from typing import Dict, Iterable, Mapping, Optional, Tuple

_SEPARATORS = re.compile(r"[_\-\s]+")


# Drug classes (class key -> member drugs)
DRUG_CLASSES: Dict[str, Tuple[str, ...]] = {
    "nsaids": ("ibuprofen", "naproxen", "diclofenac", "celecoxib", "meloxicam", "piroxicam", "ketoprofen"),
    "beta_blockers": ("metoprolol", "bisoprolol", "carvedilol", "atenolol", "propranolol", "nebivolol"),
    "beta_blockers_non_selective": ("propranolol", "nadolol", "timolol", "carvedilol", "labetalol"),
    "ace_inhibitors": ("lisinopril", "ramipril", "enalapril", "perindopril", "captopril"),
    "arbs": ("losartan", "valsartan", "irbesartan", "candesartan", "telmisartan", "olmesartan"),
    "statins": ("atorvastatin", "rosuvastatin", "simvastatin", "pravastatin", "fluvastatin"),
    "thiazides": ("hydrochlorothiazide", "chlorthalidone", "indapamide", "metolazone"),
    "anticoagulants": ("warfarin", "rivaroxaban", "apixaban", "dabigatran", "edoxaban"),
    "glitazones": ("pioglitazone", "rosiglitazone"),
    "anticholinergics": ("oxybutynin", "tolterodine", "solifenacin", "atropine", "scopolamine"),
    "corticosteroids": ("prednisone", "prednisolone", "dexamethasone", "hydrocortisone", "methylprednisolone"),
    "contrast_media": ("iodinated contrast", "iohexol", "iodixanol", "iopamidol"),
}

# Condition synonyms (canonical condition -> synonyms)
CONDITION_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "ckd": ("renal_impairment", "kidney_disease", "chronic_kidney"),
    "ckd_stage_4_5": ("severe_ckd", "esrd", "kidney_failure"),
    "heart_failure": ("chf", "cardiac_failure", "hf"),
    "heart_failure_reduced_ef": ("hfref", "systolic_heart_failure"),
    "diabetes": ("dm", "type_2_diabetes", "diabetic"),
    "asthma": ("reactive_airway", "bronchial_asthma"),
    "copd_severe": ("severe_copd", "emphysema_severe"),
    "narrow_angle_glaucoma": ("angle_closure_glaucoma", "closed_angle"),
    "open_angle_glaucoma": ("poag", "primary_open_angle"),
    "peptic_ulcer": ("gastric_ulcer", "duodenal_ulcer", "gi_bleed_history"),
}

# Allergen synonyms (allergen class -> synonyms)
ALLERGEN_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "penicillin": ("penicilline", "amoxicillin", "ampicillin", "pen_allergy"),
    "sulfonamide_antibiotics": ("sulfamide", "bactrim", "cotrimoxazole", "sulfa"),
    "aspirin": ("asa", "acetylsalicylic", "aspirin_allergy"),
    "morphine": ("opioid", "codeine", "opiate"),
    "iodinated_contrast": ("contrast", "iodine", "iode", "produit_contraste"),
}


def normalize_token(value: object) -> Optional[str]:
    """
    Normalize a free-text token.

    Returns None for anything that is not a non-blank string, so callers can
    drop it instead of letting an empty token "contain" every pattern.
    """
    if not isinstance(value, str):
        return None
    token = _SEPARATORS.sub(" ", value.strip().lower()).strip()
    return token or None


def _normalize_vocabulary(vocabulary: Mapping[str, Iterable[str]]) -> Dict[str, Tuple[str, ...]]:
    normalized: Dict[str, Tuple[str, ...]] = {}
    for key, members in vocabulary.items():
        norm_key = normalize_token(key)
        if norm_key is None:
            continue
        norm_members = tuple(m for m in (normalize_token(x) for x in members) if m)
        normalized[norm_key] = normalized.get(norm_key, ()) + norm_members
    return normalized


class TerminologyIndex:
    """
    Synonym and class-membership index shared by the three matchers.

    Built once from the vocabularies above (or from fixture vocabularies in
    tests) and never mutated afterwards.
    """

    def __init__(
        self,
        drug_classes: Optional[Mapping[str, Iterable[str]]] = None,
        condition_synonyms: Optional[Mapping[str, Iterable[str]]] = None,
        allergen_synonyms: Optional[Mapping[str, Iterable[str]]] = None,
    ):
        self._drug_classes = _normalize_vocabulary(
            DRUG_CLASSES if drug_classes is None else drug_classes
        )
        self._condition_synonyms = _normalize_vocabulary(
            CONDITION_SYNONYMS if condition_synonyms is None else condition_synonyms
        )
        self._allergen_synonyms = _normalize_vocabulary(
            ALLERGEN_SYNONYMS if allergen_synonyms is None else allergen_synonyms
        )

    def matches_drug(self, medication: object, pattern: object) -> bool:
        """Match a medication name against a drug or drug-class pattern."""
        return self._matches(medication, pattern, self._drug_classes)

    def matches_condition(self, condition: object, pattern: object) -> bool:
        """Match a condition tag against a condition pattern or its synonyms."""
        return self._matches(condition, pattern, self._condition_synonyms)

    def matches_allergen(self, allergy: object, pattern: object) -> bool:
        """Match a recorded allergy against an allergen pattern or its synonyms."""
        return self._matches(allergy, pattern, self._allergen_synonyms)

    @staticmethod
    def _matches(
        value: object,
        pattern: object,
        vocabulary: Mapping[str, Tuple[str, ...]]
    ) -> bool:
        token = normalize_token(value)
        pattern_token = normalize_token(pattern)
        if token is None or pattern_token is None:
            return False

        # Exact match
        if token == pattern_token:
            return True

        # Contains match
        if pattern_token in token or token in pattern_token:
            return True

        # Class / synonym match
        members = vocabulary.get(pattern_token)
        if members and any(member in token for member in members):
            return True

        return False


_default_index = TerminologyIndex()


def get_terminology_index() -> TerminologyIndex:
    """Index built from the bundled vocabularies."""
    return _default_index


def matches_drug(medication: object, pattern: object) -> bool:
    return _default_index.matches_drug(medication, pattern)


def matches_condition(condition: object, pattern: object) -> bool:
    return _default_index.matches_condition(condition, pattern)


def matches_allergen(allergy: object, pattern: object) -> bool:
    return _default_index.matches_allergen(allergy, pattern)
