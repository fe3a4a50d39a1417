"""
Drug interaction knowledge base.

Static, read-only tables consulted by the interaction checker:
- drug-drug interactions
- drug-disease interactions
- allergen cross-reactivity
- renal dose adjustments by eGFR band
- drug-class reference for display

Drug and condition fields may hold a single drug name or a class key
(e.g. "nsaids", "beta_blockers_non_selective"); class keys are resolved by
the terminology index.
"""
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Tuple

from cdss.config import get_settings
from cdss.constants import AllergySeverity, InteractionSeverity
from cdss.schemas import (
    AllergyCrossReactivityRecord,
    DrugDiseaseRecord,
    InteractionRecord,
    RenalDoseAdjustmentRecord,
)

_CONTRAINDICATED = InteractionSeverity.CONTRAINDICATED
_MAJOR = InteractionSeverity.MAJOR
_MODERATE = InteractionSeverity.MODERATE


# ==================== Drug-drug ====================

DRUG_DRUG_INTERACTIONS: Tuple[InteractionRecord, ...] = (
    # ACE inhibitors + potassium-sparing diuretics
    InteractionRecord(
        drug_a="lisinopril", drug_b="spironolactone", severity=_MAJOR,
        mechanism="Both drugs increase potassium retention",
        effect="Risk of severe, potentially fatal hyperkalemia",
        management="Monitor potassium weekly at start. Avoid if K+ >5.0 mEq/L. Consider dose reduction.",
        references=("ESC Heart Failure Guidelines 2021", "RALES Trial"),
    ),
    InteractionRecord(
        drug_a="ramipril", drug_b="spironolactone", severity=_MAJOR,
        mechanism="Both drugs increase potassium retention",
        effect="Risk of severe, potentially fatal hyperkalemia",
        management="Monitor potassium regularly. Avoid if K+ >5.0 mEq/L.",
        references=("ESC Heart Failure Guidelines 2021",),
    ),
    InteractionRecord(
        drug_a="enalapril", drug_b="eplerenone", severity=_MAJOR,
        mechanism="Both drugs increase potassium retention",
        effect="Risk of hyperkalemia",
        management="Monitor potassium. Contraindicated if K+ >5.0 mEq/L or GFR <30.",
        references=("EPHESUS Trial", "ESC Guidelines"),
    ),
    # ACE inhibitors + NSAIDs
    InteractionRecord(
        drug_a="lisinopril", drug_b="ibuprofen", severity=_MAJOR,
        mechanism="NSAIDs inhibit prostaglandin-mediated renal effects of ACE inhibitors",
        effect="Reduced antihypertensive effect, acute kidney injury, hyperkalemia",
        management="Avoid NSAIDs if possible; otherwise lowest dose for shortest time. Monitor renal function and potassium.",
        references=("FDA Drug Safety Communication", "KDIGO Guidelines"),
    ),
    InteractionRecord(
        drug_a="ramipril", drug_b="diclofenac", severity=_MAJOR,
        mechanism="NSAIDs reduce renal blood flow and antagonize ACE inhibitor effects",
        effect="Worsening renal function and hyperkalemia",
        management="Avoid the combination. Alternative: paracetamol or weak opioids.",
        references=("EMA Safety Review",),
    ),
    # Anticoagulants + antiplatelets
    InteractionRecord(
        drug_a="warfarin", drug_b="aspirin", severity=_MAJOR,
        mechanism="Additive anticoagulant and antiplatelet effects",
        effect="Significantly increased bleeding risk",
        management="Weigh benefit and risk. Use low-dose aspirin (75-100mg) if needed. Close INR monitoring. PPI recommended.",
        references=("WOEST Trial", "ESC Guidelines on Dual Antithrombotic Therapy"),
    ),
    InteractionRecord(
        drug_a="rivaroxaban", drug_b="clopidogrel", severity=_MAJOR,
        mechanism="Additive antithrombotic effects",
        effect="Increased bleeding risk",
        management="Limit triple therapy duration. Use rivaroxaban 15mg. Routine PPI.",
        references=("PIONEER AF-PCI Trial",),
    ),
    InteractionRecord(
        drug_a="apixaban", drug_b="aspirin", severity=_MODERATE,
        mechanism="Additive bleeding risk",
        effect="Increased bleeding risk",
        management="Reassess the need for the combination. Prefer apixaban 2.5mg bid if combined.",
        references=("ARISTOTLE Trial", "ESC AF Guidelines 2020"),
    ),
    # Digoxin
    InteractionRecord(
        drug_a="digoxin", drug_b="amiodarone", severity=_MAJOR,
        mechanism="Amiodarone inhibits P-glycoprotein and CYP3A4",
        effect="Digoxin concentration increased by 70-100%",
        management="Halve the digoxin dose when starting amiodarone. Monitor digoxin levels.",
        references=("Cordarone Product Monograph",),
    ),
    InteractionRecord(
        drug_a="digoxin", drug_b="verapamil", severity=_MAJOR,
        mechanism="Verapamil inhibits P-glycoprotein",
        effect="Digoxin concentration increased by 50-75%",
        management="Reduce digoxin dose by 30-50%. Monitor heart rate and digoxin levels.",
        references=("Clinical Pharmacology Database",),
    ),
    InteractionRecord(
        drug_a="digoxin", drug_b="clarithromycin", severity=_MAJOR,
        mechanism="Macrolides inhibit P-glycoprotein and gut flora",
        effect="Digoxin concentration increased up to 100%",
        management="Avoid if possible; otherwise monitor digoxin levels and signs of toxicity.",
        references=("FDA Warning Letter",),
    ),
    # Statins
    InteractionRecord(
        drug_a="simvastatin", drug_b="amiodarone", severity=_MAJOR,
        mechanism="CYP3A4 inhibition by amiodarone",
        effect="Increased risk of myopathy and rhabdomyolysis",
        management="Do not exceed simvastatin 10mg/day. Prefer pravastatin or rosuvastatin.",
        references=("FDA Drug Safety Communication 2011",),
    ),
    InteractionRecord(
        drug_a="atorvastatin", drug_b="clarithromycin", severity=_MAJOR,
        mechanism="CYP3A4 inhibition",
        effect="Significantly increased myopathy risk",
        management="Hold the statin during the antibiotic course or use azithromycin instead.",
        references=("Product Monograph", "CMAJ Study"),
    ),
    InteractionRecord(
        drug_a="simvastatin", drug_b="diltiazem", severity=_MODERATE,
        mechanism="CYP3A4 inhibition",
        effect="Increased simvastatin exposure",
        management="Limit simvastatin to 10mg/day. Alternative: atorvastatin or rosuvastatin.",
        references=("FDA Guidance",),
    ),
    # Metformin
    InteractionRecord(
        drug_a="metformin", drug_b="contrast_media", severity=_MAJOR,
        mechanism="Contrast-induced nephropathy potentiates lactic acidosis",
        effect="Risk of lactic acidosis after post-contrast kidney injury",
        management="Hold metformin 48h before and after iodinated contrast. Recheck creatinine at 48h.",
        references=("ESUR Guidelines", "ACR Manual on Contrast Media"),
    ),
    InteractionRecord(
        drug_a="potassium_chloride", drug_b="lisinopril", severity=_MAJOR,
        mechanism="ACE inhibitors reduce potassium excretion",
        effect="Risk of severe hyperkalemia",
        management="Avoid potassium supplements unless documented hypokalemia. Close monitoring.",
        references=("KDIGO CKD Guidelines",),
    ),
    # Anticoagulants and CYP interactions
    InteractionRecord(
        drug_a="warfarin", drug_b="fluconazole", severity=_MAJOR,
        mechanism="CYP2C9 and CYP3A4 inhibition",
        effect="Potentially massive INR increase",
        management="Reduce warfarin dose by 25-50%. Check INR after 3-5 days.",
        references=("Clinical Pharmacology",),
    ),
    InteractionRecord(
        drug_a="warfarin", drug_b="amoxicillin", severity=_MODERATE,
        mechanism="Reduction of vitamin K-producing gut flora",
        effect="Moderate INR increase",
        management="Monitor INR during and after the antibiotic course.",
        references=("BJCP Study",),
    ),
    # Beta-blockers
    InteractionRecord(
        drug_a="metoprolol", drug_b="verapamil", severity=_MAJOR,
        mechanism="Additive negative inotropic and chronotropic effects",
        effect="Risk of severe bradycardia, AV block, heart failure",
        management="Avoid the combination. Close ECG monitoring if required.",
        references=("ESC Guidelines",),
    ),
    InteractionRecord(
        drug_a="bisoprolol", drug_b="diltiazem", severity=_MAJOR,
        mechanism="Additive AV node suppression",
        effect="Risk of bradycardia and AV block",
        management="Avoid if possible. Follow-up ECG if the combination is required.",
        references=("Product Monograph",),
    ),
    # QT prolongation
    InteractionRecord(
        drug_a="amiodarone", drug_b="sotalol", severity=_CONTRAINDICATED,
        mechanism="Both drugs prolong the QT interval",
        effect="Risk of potentially fatal torsades de pointes",
        management="CONTRAINDICATED. Never combine.",
        references=("CredibleMeds QT Database", "ESC Arrhythmia Guidelines"),
    ),
    InteractionRecord(
        drug_a="amiodarone", drug_b="haloperidol", severity=_MAJOR,
        mechanism="Additive QT prolongation",
        effect="Risk of torsades de pointes",
        management="Avoid. ECG before and during treatment if required. Correct hypokalemia.",
        references=("CredibleMeds",),
    ),
    InteractionRecord(
        drug_a="ciprofloxacin", drug_b="ondansetron", severity=_MODERATE,
        mechanism="Both drugs can prolong QT",
        effect="Moderate risk of QT prolongation",
        management="ECG if risk factors (hypokalemia, heart disease). Prefer metoclopramide.",
        references=("FDA Warning",),
    ),
    # Glucose-lowering agents
    InteractionRecord(
        drug_a="glimepiride", drug_b="fluconazole", severity=_MAJOR,
        mechanism="CYP2C9 inhibition increases sulfonylurea levels",
        effect="Risk of severe hypoglycemia",
        management="Reduce the sulfonylurea dose. Increase glucose monitoring.",
        references=("Diabetes Care",),
    ),
    InteractionRecord(
        drug_a="metformin", drug_b="alcohol", severity=_MAJOR,
        mechanism="Both impair gluconeogenesis and lactate metabolism",
        effect="Increased risk of lactic acidosis and hypoglycemia",
        management="Limit alcohol intake. Avoid alcohol on an empty stomach.",
        references=("Product Monograph",),
    ),
    # Ophthalmology
    InteractionRecord(
        drug_a="timolol_eye_drops", drug_b="metoprolol", severity=_MODERATE,
        mechanism="Systemic absorption of ophthalmic beta-blocker",
        effect="Additive beta-blockade, risk of bradycardia",
        management="Monitor heart rate and BP. Punctal occlusion after instillation.",
        references=("AAO Guidelines",),
    ),
    InteractionRecord(
        drug_a="latanoprost", drug_b="bimatoprost", severity=_MODERATE,
        mechanism="Same prostaglandin analog class",
        effect="No added benefit, more irritation",
        management="Do not combine two prostaglandin analogs.",
        references=("AAO Glaucoma PPP",),
    ),
    # Dialysis
    InteractionRecord(
        drug_a="gentamicin", drug_b="vancomycin", severity=_MAJOR,
        mechanism="Additive nephrotoxicity and ototoxicity",
        effect="Increased nephrotoxicity and ototoxicity",
        management="Avoid if possible. Therapeutic drug monitoring required. Monitor renal function and hearing.",
        references=("IDSA Guidelines",),
    ),
    InteractionRecord(
        drug_a="cyclosporine", drug_b="verapamil", severity=_MAJOR,
        mechanism="CYP3A4 and P-glycoprotein inhibition",
        effect="Cyclosporine concentration increased by 40-50%",
        management="Reduce cyclosporine dose. Monitor trough levels.",
        references=("Transplantation Guidelines",),
    ),
)


# ==================== Drug-disease ====================

DRUG_DISEASE_INTERACTIONS: Tuple[DrugDiseaseRecord, ...] = (
    # Renal impairment
    DrugDiseaseRecord(
        drug="metformin", condition="ckd_stage_4_5", severity=_CONTRAINDICATED,
        mechanism="Reduced renal clearance increases lactic acid accumulation",
        effect="Risk of potentially fatal lactic acidosis",
        management="CONTRAINDICATED if GFR <30 mL/min. Reduce dose if GFR 30-45.",
    ),
    DrugDiseaseRecord(
        drug="metformin", condition="dialysis", severity=_CONTRAINDICATED,
        mechanism="Metformin is not adequately cleared",
        effect="Accumulation and lactic acidosis",
        management="CONTRAINDICATED on dialysis.",
    ),
    DrugDiseaseRecord(
        drug="nsaids", condition="ckd", severity=_MAJOR,
        mechanism="NSAIDs reduce renal blood flow and GFR",
        effect="Worsening renal failure, sodium and water retention",
        management="Avoid NSAIDs. Use paracetamol. Shortest duration if required.",
    ),
    DrugDiseaseRecord(
        drug="spironolactone", condition="ckd_stage_4_5", severity=_MAJOR,
        mechanism="Reduced potassium excretion",
        effect="Major risk of hyperkalemia",
        management="Avoid if GFR <30. Close potassium monitoring if GFR 30-45.",
    ),
    # Heart failure
    DrugDiseaseRecord(
        drug="nsaids", condition="heart_failure", severity=_MAJOR,
        mechanism="Sodium retention and vasoconstriction",
        effect="Worsening heart failure, fluid retention",
        management="Avoid NSAIDs in heart failure. Paracetamol preferred.",
    ),
    DrugDiseaseRecord(
        drug="verapamil", condition="heart_failure_reduced_ef", severity=_CONTRAINDICATED,
        mechanism="Negative inotropic effect",
        effect="Worsening heart failure, risk of decompensation",
        management="CONTRAINDICATED in HFrEF. Use amlodipine if a CCB is required.",
    ),
    DrugDiseaseRecord(
        drug="diltiazem", condition="heart_failure_reduced_ef", severity=_CONTRAINDICATED,
        mechanism="Negative inotropic effect",
        effect="Worsening heart failure",
        management="CONTRAINDICATED in HFrEF.",
    ),
    DrugDiseaseRecord(
        drug="glitazones", condition="heart_failure", severity=_CONTRAINDICATED,
        mechanism="Fluid retention",
        effect="Worsening heart failure, edema",
        management="CONTRAINDICATED. Prefer an SGLT2 inhibitor.",
    ),
    # Arrhythmia
    DrugDiseaseRecord(
        drug="digoxin", condition="wpw_syndrome", severity=_CONTRAINDICATED,
        mechanism="May accelerate conduction through the accessory pathway",
        effect="Risk of ventricular fibrillation",
        management="CONTRAINDICATED. Use procainamide or cardioversion.",
    ),
    # Diabetes
    DrugDiseaseRecord(
        drug="beta_blockers", condition="diabetes_insulin_treated", severity=_MODERATE,
        mechanism="May mask hypoglycemia symptoms",
        effect="Masked hypoglycemia signs (tachycardia, tremor)",
        management="Educate on alternative warning signs. Prefer cardioselective beta-blockers.",
    ),
    DrugDiseaseRecord(
        drug="thiazides", condition="diabetes", severity=_MODERATE,
        mechanism="Impair glucose tolerance",
        effect="Worsening glycemic control",
        management="Monitor glucose. Adjust glucose-lowering therapy if needed.",
    ),
    # Glaucoma
    DrugDiseaseRecord(
        drug="anticholinergics", condition="narrow_angle_glaucoma", severity=_CONTRAINDICATED,
        mechanism="Pupillary dilation may precipitate acute angle closure",
        effect="Risk of acute glaucoma attack",
        management="CONTRAINDICATED. Confirm glaucoma type before prescribing.",
    ),
    DrugDiseaseRecord(
        drug="corticosteroids", condition="open_angle_glaucoma", severity=_MAJOR,
        mechanism="Increase intraocular pressure",
        effect="IOP elevation, worsening glaucoma",
        management="Avoid if possible. Monitor IOP if required. Ocular route is highest risk.",
    ),
    # Airways
    DrugDiseaseRecord(
        drug="beta_blockers_non_selective", condition="asthma", severity=_CONTRAINDICATED,
        mechanism="Beta-2 blockade causes bronchoconstriction",
        effect="Severe, potentially fatal bronchospasm",
        management="CONTRAINDICATED. Use cardioselective beta-blockers with caution if needed.",
    ),
    DrugDiseaseRecord(
        drug="beta_blockers_non_selective", condition="copd_severe", severity=_MAJOR,
        mechanism="Beta-2 blockade reduces bronchodilation",
        effect="Risk of bronchospasm",
        management="Prefer cardioselective beta-blockers, titrated slowly.",
    ),
    # Bleeding
    DrugDiseaseRecord(
        drug="anticoagulants", condition="active_bleeding", severity=_CONTRAINDICATED,
        mechanism="Will worsen bleeding",
        effect="Worsening hemorrhage",
        management="CONTRAINDICATED with uncontrolled active bleeding.",
    ),
    DrugDiseaseRecord(
        drug="nsaids", condition="peptic_ulcer", severity=_MAJOR,
        mechanism="Inhibit protective prostaglandins and platelet function",
        effect="Risk of upper GI bleeding",
        management="Avoid NSAIDs. If required, add a high-dose PPI.",
    ),
    # Liver
    DrugDiseaseRecord(
        drug="statins", condition="active_liver_disease", severity=_CONTRAINDICATED,
        mechanism="Increased hepatotoxicity risk",
        effect="Risk of hepatotoxicity",
        management="CONTRAINDICATED if transaminases >3x upper normal.",
    ),
    DrugDiseaseRecord(
        drug="methotrexate", condition="liver_cirrhosis", severity=_CONTRAINDICATED,
        mechanism="Hepatotoxic in impaired liver",
        effect="Risk of severe hepatotoxicity",
        management="CONTRAINDICATED in cirrhosis.",
    ),
)


# ==================== Allergen cross-reactivity ====================

ALLERGEN_CROSS_REACTIVITY: Tuple[AllergyCrossReactivityRecord, ...] = (
    # Penicillins
    AllergyCrossReactivityRecord(
        drug="amoxicillin", allergen="penicillin", cross_reactivity=True,
        severity=AllergySeverity.LIFE_THREATENING,
        recommendation="CONTRAINDICATED with true penicillin allergy. Use a macrolide or fluoroquinolone.",
    ),
    AllergyCrossReactivityRecord(
        drug="ampicillin", allergen="penicillin", cross_reactivity=True,
        severity=AllergySeverity.LIFE_THREATENING,
        recommendation="CONTRAINDICATED with penicillin allergy.",
    ),
    AllergyCrossReactivityRecord(
        drug="cephalexin", allergen="penicillin", cross_reactivity=True,
        severity=AllergySeverity.SEVERE,
        recommendation="Cross-reactivity ~1-2%. Avoid after anaphylaxis. Third-generation cephalosporins carry lower risk.",
    ),
    AllergyCrossReactivityRecord(
        drug="ceftriaxone", allergen="penicillin", cross_reactivity=False,
        severity=AllergySeverity.MODERATE,
        recommendation="Very low risk (<0.5%). Usable with caution for non-anaphylactic allergy.",
    ),
    AllergyCrossReactivityRecord(
        drug="meropenem", allergen="penicillin", cross_reactivity=False,
        severity=AllergySeverity.MODERATE,
        recommendation="Very low cross-reactivity (<1%). Usable under monitoring if needed.",
    ),
    # Sulfonamides
    AllergyCrossReactivityRecord(
        drug="sulfamethoxazole", allergen="sulfonamide_antibiotics", cross_reactivity=True,
        severity=AllergySeverity.LIFE_THREATENING,
        recommendation="CONTRAINDICATED with sulfonamide antibiotic allergy.",
    ),
    AllergyCrossReactivityRecord(
        drug="furosemide", allergen="sulfonamide_antibiotics", cross_reactivity=False,
        severity=AllergySeverity.MILD,
        recommendation="Different structure. Cross-reactivity not demonstrated. May be used.",
    ),
    AllergyCrossReactivityRecord(
        drug="hydrochlorothiazide", allergen="sulfonamide_antibiotics", cross_reactivity=False,
        severity=AllergySeverity.MILD,
        recommendation="No proven cross-reactivity. May be used with caution.",
    ),
    # NSAIDs
    AllergyCrossReactivityRecord(
        drug="ibuprofen", allergen="aspirin", cross_reactivity=True,
        severity=AllergySeverity.SEVERE,
        recommendation="Cross-reaction possible (15-20%). Prefer paracetamol or a selective COX-2 inhibitor.",
    ),
    AllergyCrossReactivityRecord(
        drug="naproxen", allergen="aspirin", cross_reactivity=True,
        severity=AllergySeverity.SEVERE,
        recommendation="Frequent cross-reaction between NSAIDs. Avoid all NSAIDs after aspirin anaphylaxis.",
    ),
    AllergyCrossReactivityRecord(
        drug="celecoxib", allergen="aspirin", cross_reactivity=False,
        severity=AllergySeverity.MODERATE,
        recommendation="Very low cross-reactivity (~4%). Possible alternative under monitoring.",
    ),
    # Opioids
    AllergyCrossReactivityRecord(
        drug="codeine", allergen="morphine", cross_reactivity=True,
        severity=AllergySeverity.SEVERE,
        recommendation="Possible cross-reaction (phenanthrenes). Prefer fentanyl (phenylpiperidine).",
    ),
    AllergyCrossReactivityRecord(
        drug="fentanyl", allergen="morphine", cross_reactivity=False,
        severity=AllergySeverity.MILD,
        recommendation="Different structure (phenylpiperidine). Safe alternative to phenanthrenes.",
    ),
    # Contrast media
    AllergyCrossReactivityRecord(
        drug="iodinated_contrast", allergen="iodinated_contrast", cross_reactivity=True,
        severity=AllergySeverity.LIFE_THREATENING,
        recommendation="Premedication required (corticosteroids + antihistamines). Use an iso-osmolar agent.",
    ),
)


# ==================== Renal dose adjustments ====================

_NO_ADJUSTMENT = "No adjustment"

RENAL_DOSE_ADJUSTMENTS: Tuple[RenalDoseAdjustmentRecord, ...] = (
    # Cardiovascular
    RenalDoseAdjustmentRecord(
        drug="lisinopril", normal_dose="10-40 mg/day", egfr_30_59="5-20 mg/day",
        egfr_15_29="2.5-10 mg/day", egfr_below_15="2.5-5 mg/day",
        dialysis="Dialyzable - give after session", notes="Monitor potassium and creatinine",
    ),
    RenalDoseAdjustmentRecord(
        drug="ramipril", normal_dose="2.5-10 mg/day", egfr_30_59="1.25-5 mg/day",
        egfr_15_29="1.25-2.5 mg/day", egfr_below_15="1.25 mg/day max",
        dialysis="Partially dialyzable", notes="Start at a low dose",
    ),
    RenalDoseAdjustmentRecord(
        drug="bisoprolol", normal_dose="2.5-10 mg/day", egfr_30_59=_NO_ADJUSTMENT,
        egfr_15_29=_NO_ADJUSTMENT, egfr_below_15=_NO_ADJUSTMENT,
        dialysis="Not dialyzable", notes="No adjustment needed",
    ),
    RenalDoseAdjustmentRecord(
        drug="metoprolol", normal_dose="50-200 mg/day", egfr_30_59=_NO_ADJUSTMENT,
        egfr_15_29=_NO_ADJUSTMENT, egfr_below_15=_NO_ADJUSTMENT,
        dialysis="Not dialyzable", notes="Hepatic metabolism",
    ),
    RenalDoseAdjustmentRecord(
        drug="atenolol", normal_dose="50-100 mg/day", egfr_30_59="50 mg/day",
        egfr_15_29="25-50 mg/day", egfr_below_15="25 mg/day",
        dialysis="Dialyzable - 25mg after session", notes="Significant reduction required",
    ),
    RenalDoseAdjustmentRecord(
        drug="digoxin", normal_dose="0.125-0.25 mg/day", egfr_30_59="0.125 mg/day",
        egfr_15_29="0.0625-0.125 mg/day", egfr_below_15="0.0625 mg/48h",
        dialysis="Not dialyzable - caution", notes="Target digoxin level 0.5-1 ng/mL",
    ),
    RenalDoseAdjustmentRecord(
        drug="spironolactone", normal_dose="25-50 mg/day", egfr_30_59="12.5-25 mg/day",
        egfr_15_29="Avoid if possible", egfr_below_15="Contraindicated",
        dialysis="Contraindicated", notes="Major hyperkalemia risk",
    ),
    # Anticoagulants
    RenalDoseAdjustmentRecord(
        drug="rivaroxaban", normal_dose="20 mg/day", egfr_30_59="15 mg/day",
        egfr_15_29="15 mg/day with caution", egfr_below_15="Not recommended",
        dialysis="Not recommended", notes="Avoid if CrCl <15 mL/min",
    ),
    RenalDoseAdjustmentRecord(
        drug="apixaban", normal_dose="5 mg twice daily", egfr_30_59="5 mg twice daily",
        egfr_15_29="2.5 mg twice daily", egfr_below_15="2.5 mg twice daily if benefit outweighs risk",
        dialysis="Limited data - 2.5 mg twice daily", notes="Less renally dependent than other DOACs",
    ),
    RenalDoseAdjustmentRecord(
        drug="dabigatran", normal_dose="150 mg twice daily", egfr_30_59="110 mg twice daily",
        egfr_15_29="Contraindicated", egfr_below_15="Contraindicated",
        dialysis="Contraindicated", notes="Highly dependent on renal elimination",
    ),
    RenalDoseAdjustmentRecord(
        drug="enoxaparin", normal_dose="1 mg/kg twice daily", egfr_30_59=_NO_ADJUSTMENT,
        egfr_15_29="1 mg/kg once daily", egfr_below_15="0.5 mg/kg once daily",
        dialysis="Avoid - anti-Xa monitoring if required", notes="Monitor anti-Xa in severe CKD",
    ),
    # Antibiotics
    RenalDoseAdjustmentRecord(
        drug="amoxicillin", normal_dose="500 mg three times daily", egfr_30_59="500 mg twice daily",
        egfr_15_29="500 mg once daily", egfr_below_15="250-500 mg once daily",
        dialysis="Give after dialysis", notes="Significant adjustment",
    ),
    RenalDoseAdjustmentRecord(
        drug="ciprofloxacin", normal_dose="500 mg twice daily", egfr_30_59="250-500 mg twice daily",
        egfr_15_29="250-500 mg once daily", egfr_below_15="250 mg once daily",
        dialysis="After dialysis if possible", notes="Higher tendinopathy risk in CKD",
    ),
    RenalDoseAdjustmentRecord(
        drug="levofloxacin", normal_dose="500-750 mg/day", egfr_30_59="500 mg then 250 mg/day",
        egfr_15_29="500 mg then 250 mg/48h", egfr_below_15="500 mg then 250 mg/48h",
        dialysis="After dialysis", notes="Interval adjustment",
    ),
    RenalDoseAdjustmentRecord(
        drug="vancomycin", normal_dose="15 mg/kg twice daily", egfr_30_59="Per trough levels",
        egfr_15_29="15 mg/kg then per levels", egfr_below_15="15 mg/kg then 500-1000mg every 48-72h",
        dialysis="15-20 mg/kg post-HD per levels", notes="REQUIRED: trough level monitoring",
    ),
    RenalDoseAdjustmentRecord(
        drug="gentamicin", normal_dose="5-7 mg/kg/day", egfr_30_59="5 mg/kg then extended interval",
        egfr_15_29="5 mg/kg then per levels", egfr_below_15="Avoid unless essential",
        dialysis="2 mg/kg post-HD", notes="Nephrotoxic and ototoxic - shortest duration",
    ),
    # Glucose-lowering agents
    RenalDoseAdjustmentRecord(
        drug="metformin", normal_dose="500-2000 mg/day", egfr_30_59="500-1000 mg/day max",
        egfr_15_29="Contraindicated", egfr_below_15="Contraindicated",
        dialysis="Contraindicated", notes="Risk of lactic acidosis",
    ),
    RenalDoseAdjustmentRecord(
        drug="sitagliptin", normal_dose="100 mg/day", egfr_30_59="50 mg/day",
        egfr_15_29="25 mg/day", egfr_below_15="25 mg/day",
        dialysis="25 mg/day - not dialyzable", notes="Simple stepwise adjustment",
    ),
    RenalDoseAdjustmentRecord(
        drug="empagliflozin", normal_dose="10-25 mg/day", egfr_30_59="10 mg/day",
        egfr_15_29="Avoid for glycemia (acceptable for heart failure)",
        egfr_below_15="Not recommended for glycemia",
        dialysis="Not recommended", notes="Glycemic efficacy falls with low GFR",
    ),
    # Analgesics
    RenalDoseAdjustmentRecord(
        drug="gabapentin", normal_dose="300-1200 mg three times daily",
        egfr_30_59="200-700 mg twice daily", egfr_15_29="100-300 mg once or twice daily",
        egfr_below_15="100-300 mg/day", dialysis="125-350 mg after HD",
        notes="Major adjustment required",
    ),
    RenalDoseAdjustmentRecord(
        drug="pregabalin", normal_dose="75-300 mg twice daily", egfr_30_59="75-150 mg twice daily",
        egfr_15_29="25-75 mg once or twice daily", egfr_below_15="25-75 mg/day",
        dialysis="Supplemental dose post-HD", notes="Risk of sedation if overdosed",
    ),
    RenalDoseAdjustmentRecord(
        drug="morphine", normal_dose="Variable", egfr_30_59="Reduce by 25%",
        egfr_15_29="Reduce by 50%", egfr_below_15="Reduce by 75% or avoid",
        dialysis="Avoid - M6G metabolite accumulates", notes="Prefer hydromorphone or fentanyl",
    ),
    RenalDoseAdjustmentRecord(
        drug="tramadol", normal_dose="50-100 mg four times daily",
        egfr_30_59="50-100 mg two to three times daily", egfr_15_29="50 mg twice daily max",
        egfr_below_15="50 mg twice daily max", dialysis="50 mg twice daily - not dialyzable",
        notes="Risk of seizures if overdosed",
    ),
)


# Display reference, keyed by human-readable class name
DRUG_CLASS_REFERENCE: Dict[str, Tuple[str, ...]] = {
    "ACE inhibitors": ("lisinopril", "ramipril", "enalapril", "perindopril", "captopril"),
    "Angiotensin receptor blockers": ("losartan", "valsartan", "irbesartan", "candesartan", "telmisartan"),
    "Beta-blockers": ("metoprolol", "bisoprolol", "carvedilol", "atenolol", "propranolol", "nebivolol"),
    "Calcium channel blockers": ("amlodipine", "nifedipine", "verapamil", "diltiazem"),
    "Diuretics": ("furosemide", "hydrochlorothiazide", "spironolactone", "eplerenone", "indapamide"),
    "Oral anticoagulants": ("warfarin", "rivaroxaban", "apixaban", "dabigatran", "edoxaban"),
    "Antiplatelets": ("aspirin", "clopidogrel", "prasugrel", "ticagrelor"),
    "Statins": ("atorvastatin", "rosuvastatin", "simvastatin", "pravastatin"),
    "NSAIDs": ("ibuprofen", "naproxen", "diclofenac", "celecoxib", "meloxicam"),
    "Glucose-lowering agents": ("metformin", "glimepiride", "sitagliptin", "empagliflozin", "liraglutide"),
}


@dataclass(frozen=True)
class InteractionKnowledgeBase:
    """Frozen bundle of the interaction tables, swapped as a whole."""
    drug_drug: Tuple[InteractionRecord, ...] = DRUG_DRUG_INTERACTIONS
    drug_disease: Tuple[DrugDiseaseRecord, ...] = DRUG_DISEASE_INTERACTIONS
    allergy: Tuple[AllergyCrossReactivityRecord, ...] = ALLERGEN_CROSS_REACTIVITY
    renal: Tuple[RenalDoseAdjustmentRecord, ...] = RENAL_DOSE_ADJUSTMENTS
    drug_classes: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(DRUG_CLASS_REFERENCE))
    version: str = "bundled"


@lru_cache()
def get_default_knowledge_base() -> InteractionKnowledgeBase:
    """Knowledge base built from the bundled tables, created once."""
    return InteractionKnowledgeBase(version=get_settings().KNOWLEDGE_BASE_VERSION)
