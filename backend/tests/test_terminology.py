import pytest

from cdss.terminology import (
    TerminologyIndex,
    matches_allergen,
    matches_condition,
    matches_drug,
    normalize_token,
)


@pytest.mark.parametrize("medication,pattern", [
    ("metformin", "metformin"),
    ("Metformin 500mg", "metformin"),
    ("  WARFARIN ", "warfarin"),
    ("ibuprofen", "nsaids"),
    ("propranolol", "beta_blockers_non_selective"),
    ("iohexol", "contrast_media"),
])
def test_matches_drug(medication, pattern):
    assert matches_drug(medication, pattern)


@pytest.mark.parametrize("medication,pattern", [
    ("metformin", "nsaids"),
    ("bisoprolol", "beta_blockers_non_selective"),
    ("paracetamol", "warfarin"),
])
def test_matches_drug_negative(medication, pattern):
    assert not matches_drug(medication, pattern)


@pytest.mark.parametrize("condition,pattern", [
    ("esrd", "ckd_stage_4_5"),
    ("ckd_stage_4_5", "ckd_stage_4_5"),
    ("CKD stage 4-5", "ckd_stage_4_5"),
    ("chf", "heart_failure"),
    ("type_2_diabetes", "diabetes"),
    ("poag", "open_angle_glaucoma"),
])
def test_matches_condition(condition, pattern):
    assert matches_condition(condition, pattern)


def test_condition_synonym_only_applies_to_its_own_key():
    assert not matches_condition("esrd", "heart_failure")


@pytest.mark.parametrize("allergy,pattern", [
    ("penicillin", "penicillin"),
    ("Penicilline", "penicillin"),
    ("pen_allergy", "penicillin"),
    ("sulfa", "sulfonamide_antibiotics"),
    ("iodine", "iodinated_contrast"),
])
def test_matches_allergen(allergy, pattern):
    assert matches_allergen(allergy, pattern)


@pytest.mark.parametrize("value", ["", "   ", None, 42, ["metformin"]])
def test_blank_or_non_string_never_matches(value):
    assert not matches_drug(value, "metformin")
    assert not matches_condition(value, "ckd")
    assert not matches_allergen(value, "penicillin")
    assert not matches_drug("metformin", value)


def test_normalize_token():
    assert normalize_token("  CKD_Stage-4  5 ") == "ckd stage 4 5"
    assert normalize_token("") is None
    assert normalize_token(None) is None


def test_custom_index_vocabulary():
    index = TerminologyIndex(drug_classes={"gliptins": ["sitagliptin", "linagliptin"]})
    assert index.matches_drug("linagliptin", "gliptins")
    # bundled classes are replaced, not merged
    assert not index.matches_drug("ibuprofen", "nsaids")
