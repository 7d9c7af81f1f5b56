from enum import Enum
from typing import Dict, List


class EducationLevel(str, Enum):
    LESS_THAN_HIGH_SCHOOL = 'less_than_high_school'
    HIGH_SCHOOL = 'high_school'
    SOME_COLLEGE = 'some_college'
    ASSOCIATES = 'associates'
    BACHELORS = 'bachelors'
    MASTERS = 'masters'
    DOCTORATE = 'doctorate'
    PROFESSIONAL = 'professional'


COLLEGE_OR_HIGHER: List[EducationLevel] = [
    EducationLevel.ASSOCIATES,
    EducationLevel.BACHELORS,
    EducationLevel.MASTERS,
    EducationLevel.DOCTORATE,
    EducationLevel.PROFESSIONAL,
]

education_levels: Dict[str, str] = {
    EducationLevel.LESS_THAN_HIGH_SCHOOL.value: "Less than high school",
    EducationLevel.HIGH_SCHOOL.value: "High school diploma or GED",
    EducationLevel.SOME_COLLEGE.value: "Some college",
    EducationLevel.ASSOCIATES.value: "Associate's degree",
    EducationLevel.BACHELORS.value: "Bachelor's degree",
    EducationLevel.MASTERS.value: "Master's degree",
    EducationLevel.DOCTORATE.value: "Doctorate",
    EducationLevel.PROFESSIONAL.value: "Professional degree",
}


def is_college_or_higher(level: str | None) -> bool:
    if not level:
        return False
    return level in {lvl.value for lvl in COLLEGE_OR_HIGHER}


class SignatureMode(str, Enum):
    WET = 'wet'
    CHECKBOX = 'checkbox'
    NONE = 'none'


# Checkbox text per consent field id.
consent_labels: Dict[str, str] = {
    'driverLicenseConsent': "I authorize a search of my driving record.",
    'drugTestConsent': "I consent to pre-employment drug testing.",
    'biometricConsent': "I consent to the collection of my biometric data.",
}

# Years a residence or employment history can be asked to cover.
timeline_years: List[int] = [1, 3, 5, 7, 10]

employer_counts: List[int] = [1, 2, 3]
