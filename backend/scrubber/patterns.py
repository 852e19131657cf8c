"""Regex tables, keyword lists and whitelists used by the redaction passes."""

from __future__ import annotations

import re

_MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
)

# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------

# A complete placeholder token, e.g. "[PER_1]" or "[PER1]"
PLACEHOLDER_TOKEN_RE = re.compile(r"^\[[A-Z_]+\d+\]$")

# A chunk made only of placeholders and whitespace
PLACEHOLDER_ONLY_RE = re.compile(r"^(\s*\[[A-Z_]+\d+\]\s*)+$")

# ---------------------------------------------------------------------------
# Structural patterns (phase 1)
# ---------------------------------------------------------------------------

EMAIL = re.compile(r"\b[\w\.-]+@[\w\.-]+\.\w{2,4}\b")
PHONE = re.compile(r"(?:\+?1[-. ]?)?\(?([0-9]{3})\)?[-. ]?([0-9]{3})[-. ]?([0-9]{4})")
SSN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")
SSN_PARTIAL = re.compile(r"\b(?:last\s*4|xxx-xx-)\s*[-:]?\s*\d{4}\b", re.IGNORECASE)
DATE = re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b")
DATE_WRITTEN = re.compile(
    rf"\b(?:{_MONTHS})\s+\d{{1,2}}(?:st|nd|rd|th)?(?:,?\s+\d{{4}})?\b",
    re.IGNORECASE,
)
DATE_WRITTEN_ALT = re.compile(
    rf"\b\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?(?:{_MONTHS})(?:,?\s+\d{{4}})?\b",
    re.IGNORECASE,
)
CREDIT_CARD = re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b")
ZIPCODE = re.compile(r"\b\d{5}(?:-\d{4})?\b")
AGE = re.compile(
    r"\b\d{1,3}\s*(?:year[s]?\s*old|y\.?o\.?|yo|yr[s]?(?:\s*old)?)\b", re.IGNORECASE
)
AGE_CONTEXT = re.compile(r"\b(?:age[d]?|DOB\s+indicates)\s*[:\s]*\d{1,3}\b", re.IGNORECASE)
ADDRESS = re.compile(
    r"\d+\s+(?:[A-Za-z]+\s+){1,4}"
    r"(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr|Court|Ct"
    r"|Parkway|Pkwy|Way|Circle|Cir|Place|Pl|Terrace|Ter)"
    r"(?:\.|\s|,|\s+Apt|\s+Suite|\s+Unit|\s+#)?(?:\s*[A-Za-z0-9#-]*)?",
    re.IGNORECASE,
)
CITY_STATE = re.compile(r"\b[A-Z][a-zA-Z\s]+,\s*[A-Z]{2}\b")
PO_BOX = re.compile(r"P\.?\s*O\.?\s*Box\s+\d+", re.IGNORECASE)
ALL_CAPS_NAME = re.compile(r"\b[A-Z]{2,}(?:,?\s+[A-Z]{2,})+\b")
ALL_CAPS_SINGLE = re.compile(r"\b[A-Z]{3,}\b")
LAST_FIRST_NAME = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*,\s*[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
NAME_APOSTROPHE = re.compile(r"\b(?:O'|Mc|Mac)?[A-Z][a-z]+(?:[-'][A-Z]?[a-z]+)+\b")
NAME_WITH_SUFFIX = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\s+(?:Jr\.?|Sr\.?|II|III|IV|V)\b")
INSURANCE_ID = re.compile(
    r"\b(?:policy|member|subscriber|group|insurance)\s*(?:#|number|id|no)?[:\s]*[A-Z0-9]{6,15}\b",
    re.IGNORECASE,
)

# Phase 1 run order: (pattern, placeholder prefix)
STRUCTURAL_PASSES: list[tuple[re.Pattern[str], str]] = [
    (EMAIL, "EMAIL"),
    (PHONE, "PHONE"),
    (SSN, "SSN"),
    (SSN_PARTIAL, "SSN"),
    (CREDIT_CARD, "CARD"),
    (ZIPCODE, "ZIP"),
    (INSURANCE_ID, "ID"),
    (DATE, "DATE"),
    (DATE_WRITTEN, "DATE"),
    (DATE_WRITTEN_ALT, "DATE"),
    (AGE, "AGE"),
    (AGE_CONTEXT, "AGE"),
    # full addresses before city/state pairs
    (ADDRESS, "ADDR"),
    (PO_BOX, "POBOX"),
    (CITY_STATE, "LOC"),
    (ALL_CAPS_NAME, "PER"),
    (LAST_FIRST_NAME, "PER"),
    (NAME_APOSTROPHE, "PER"),
    (NAME_WITH_SUFFIX, "PER"),
]

# ---------------------------------------------------------------------------
# Context detectors (phase 3)
# ---------------------------------------------------------------------------

US_STATES: frozenset[str] = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "DC", "PR", "VI", "GU", "AS", "MP",  # DC and territories
})

STATE_TOKEN = re.compile(r"\b([A-Z]{2})\b")

MRN_CONTEXT_KEYWORDS: list[str] = [
    "MRN", "Medical Record Number", "Patient ID", "Patient Number",
    "Record Number", "Chart Number", "Account Number", "Member ID",
]

MRN_CONTEXT = re.compile(
    r"(" + "|".join(re.escape(k) for k in MRN_CONTEXT_KEYWORDS) + r")[:\s]+([A-Z0-9]{6,12})\b",
    re.IGNORECASE,
)

NAME_LABELS: list[str] = [
    "Patient Name", "Name", "Full Name", "Legal Name", "Patient",
    "Pt Name", "Patient's Name", "Name of Patient", "patientName",
    "patient_name", "fullName", "full_name",
]

# Longest label first so "Patient Name" wins over "Patient"
NAME_LABEL = re.compile(
    r"("
    + "|".join(re.escape(label) for label in sorted(NAME_LABELS, key=len, reverse=True))
    + r")\s*:\s*",
    re.IGNORECASE,
)

# Name shapes tried after a label, most specific first.  Case-sensitive.
LABELED_NAME_SHAPES: list[re.Pattern[str]] = [
    re.compile(r"[A-Z]{2,}(?:,?\s+[A-Z]{2,})+"),
    re.compile(r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*,\s*[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"),
    re.compile(r"(?:(?:Dr|Mr|Ms|Mrs|Miss)\.?\s+)?[A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,3}"),
]

# ---------------------------------------------------------------------------
# Broad patterns (phases 6 and 7)
# ---------------------------------------------------------------------------

CAPITALIZED_SEQUENCE = re.compile(r"\b[A-Z][a-z]{2,}(?:\s+[A-Z][a-z]{2,})+\b")
ALL_CAPS_SEQUENCE = re.compile(r"\b[A-Z]{2,}(?:,?\s+[A-Z]{2,})+\b")
LAST_FIRST_SEQUENCE = re.compile(
    r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*,\s*[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b"
)
NUMERIC_ID = re.compile(r"\b[A-Z]{0,3}\d{6,12}\b")
EMAIL_LIKE = re.compile(r"\b[a-zA-Z0-9][a-zA-Z0-9._-]*@[a-zA-Z0-9][a-zA-Z0-9.-]*\.[a-zA-Z]{2,}\b")
PHONE_LIKE = re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b")
DATE_LIKE = re.compile(r"\b\d{1,4}[-/]\d{1,2}[-/]\d{1,4}\b")
ADDRESS_LIKE = re.compile(r"\b\d+\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,3}\b")

# Date-like matches that are really times or version numbers
TIME_OR_VERSION = re.compile(r"^\d{1,2}:\d{2}|^v?\d+\.\d+")

WHITELIST_TERMS: frozenset[str] = frozenset({
    "January", "February", "March", "April", "May", "June", "July", "August",
    "September", "October", "November", "December",
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    "Doctor", "Patient", "Hospital", "Clinic", "Medical", "Health", "Treatment", "Diagnosis",
    "Blood", "Heart", "Liver", "Kidney", "Brain", "Lung", "Skin", "Bone",
    "Pressure", "Temperature", "Weight", "Height", "Pulse", "Rate",
    "Normal", "Abnormal", "Positive", "Negative", "Result", "Test", "Lab", "Study",
    "Emergency", "Discharge", "Admission", "Visit", "Appointment", "Follow", "Up",
    "General", "Internal", "External", "Primary", "Secondary", "Acute", "Chronic",
    "United", "States", "America", "North", "South", "East", "West", "Central",
})

WHITELIST_ACRONYMS: frozenset[str] = frozenset({
    # clinical
    "CBC", "MRI", "CAT", "EKG", "ECG", "EEG", "EMG", "ICU", "CCU", "NICU", "PICU", "ER", "OR", "ED",
    "HIV", "AIDS", "COVID", "COPD", "CHF", "CAD", "GERD", "UTI", "DVT", "PE", "MI", "CVA", "TIA",
    "BMI", "BP", "HR", "RR", "SPO", "BUN", "WBC", "RBC", "HGB", "HCT", "PLT", "BMP", "CMP", "LFT",
    "TSH", "PSA", "HBA", "INR", "PTT", "ABG", "VBG", "CSF", "EGD", "ERCP", "PET", "CT", "US",
    "PRN", "BID", "TID", "QID", "QHS", "QAM", "QPM", "PO", "IV", "IM", "SQ", "SL", "PR", "TOP",
    "DNR", "DNI", "POLST", "HCP", "POA", "LTC", "SNF", "ALF", "ICD", "CPT", "DRG", "HCPCS",
    "STAT", "ASAP", "WNL", "NAD", "PERRLA", "ROS", "HPI", "PMH", "PSH", "FH", "SH", "RX", "DX", "TX",
    "SOB", "DOE", "PND", "JVD", "RUQ", "LUQ", "RLQ", "LLQ", "ROM", "DTR", "CN", "EOM",
    "AMA", "ADA", "HIPAA", "PHI", "EMR", "EHR", "CMS", "FDA", "CDC", "NIH", "WHO",
    # document terms
    "PDF", "DOC", "PAGE", "DATE", "TIME", "NOTE", "NOTES", "FORM", "REPORT", "SUMMARY", "HISTORY",
    "NAME", "AGE", "SEX", "DOB", "MRN", "SSN", "ZIP", "FAX", "TEL", "EXT",
    "MALE", "FEMALE", "YES", "NO", "NA", "N/A", "TBD", "NKA", "NKDA",
    # section headers
    "SUBJECTIVE", "OBJECTIVE", "ASSESSMENT", "PLAN", "SOAP", "IMPRESSION", "RECOMMENDATION",
    "CHIEF", "COMPLAINT", "ALLERGIES", "MEDICATIONS", "VITALS", "EXAM", "LABS", "IMAGING",
    "PROCEDURE", "PROCEDURES", "SURGERY", "SURGERIES", "DIAGNOSIS", "DIAGNOSES",
    # misc
    "USA", "UK", "EST", "PST", "CST", "MST", "UTC", "GMT", "AM", "PM",
})

# ---------------------------------------------------------------------------
# Leak heuristics
# ---------------------------------------------------------------------------

SCRUBBED_MARKER = re.compile(r"\[[A-Z_]+_\d+\]")

PII_SHAPES: list[re.Pattern[str]] = [
    re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"),                          # phone
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),                                   # SSN
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"),     # email
    re.compile(r"\b\d{5}(-\d{4})?\b"),                                      # ZIP
]
