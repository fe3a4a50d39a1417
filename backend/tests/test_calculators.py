import pytest

from cdss.calculators import bmi, cha2ds2_vasc, ckd_stage, corrected_qt, creatinine_clearance
from cdss.exceptions import InvalidClinicalInputError
from cdss.schemas import ClinicalSnapshot


@pytest.mark.parametrize("egfr,stage", [
    (95, "1"),
    (60, "2"),
    (45, "3a"),
    (44.9, "3b"),
    (15, "4"),
    (10, "5"),
    (0, "5"),
])
def test_ckd_stage(egfr, stage):
    result = ckd_stage(egfr)
    assert result.stage == stage
    assert result.kdigo_classification == f"CKD G{stage}"
    assert result.recommendations


@pytest.mark.parametrize("egfr", [-1, 250, None, float("nan"), True])
def test_ckd_stage_rejects_bad_input(egfr):
    with pytest.raises(InvalidClinicalInputError):
        ckd_stage(egfr)


def test_invalid_input_is_value_error():
    with pytest.raises(ValueError):
        ckd_stage(500)


def test_creatinine_clearance():
    male = creatinine_clearance(age=60, weight_kg=70, sex="male", creatinine=1.0)
    female = creatinine_clearance(age=60, weight_kg=70, sex="Female", creatinine=1.0)

    assert male.value == 77.8
    assert male.category == "Mild decrease"
    assert male.formula == "Cockcroft-Gault"
    assert female.value == 66.1


def test_creatinine_clearance_rejects_unknown_sex():
    with pytest.raises(InvalidClinicalInputError):
        creatinine_clearance(age=60, weight_kg=70, sex="unknown", creatinine=1.0)


def test_bmi():
    result = bmi(weight_kg=70, height_cm=175)
    assert result.value == 22.9
    assert result.category == "Normal weight"
    assert result.ideal_weight_range == {"min": 57, "max": 76}


def test_bmi_obesity():
    assert bmi(weight_kg=130, height_cm=170).category == "Obesity class III"


@pytest.mark.parametrize("formula", ["bazett", "fridericia", "framingham"])
def test_corrected_qt_at_60_bpm_equals_qt(formula):
    result = corrected_qt(400, 60, formula)
    assert result.qtc == 400
    assert result.risk_level == "low"
    assert result.recommendations == []


def test_corrected_qt_prolonged():
    result = corrected_qt(480, 75)
    assert result.qtc == 537
    assert result.risk_level == "high"
    assert result.recommendations


def test_corrected_qt_unknown_formula():
    with pytest.raises(InvalidClinicalInputError):
        corrected_qt(400, 60, "hodges")


def test_cha2ds2_vasc():
    snapshot = ClinicalSnapshot(
        patient_id="p-af",
        demographics={"age": 76, "sex": "female"},
        conditions=["Diabetes", "hypertension"],
        cardiology={"has_af": True, "has_chf": True},
    )
    assert cha2ds2_vasc(snapshot) == 6


def test_cha2ds2_vasc_sparse_snapshot():
    assert cha2ds2_vasc(ClinicalSnapshot(patient_id="p-empty")) == 0
