# verifyform/key_decoder.py
"""
Requirement key decoding.

A requirement key is a compact description of what a verification form
has to collect. Two encodings are in circulation:

- bitstring: ``"en" + 12 bits``, e.g. ``en101100101100``
- facets: language plus seven hyphen separated facets,
  e.g. ``en-EPMA-DTB-R5-E5-E-P-W``

``decode`` hides the difference; both produce the same ``Requirements``.
"""
from __future__ import annotations
import logging
import re
from re import Pattern
from dataclasses import dataclass, field, asdict
from typing import Any, Literal

from .options import SignatureMode, employer_counts, timeline_years

logger = logging.getLogger(__name__)

EmploymentMode = Literal['years', 'employers']

# ===================================================================
# 1. DECODED REQUIREMENTS
# ===================================================================

@dataclass(frozen=True)
class PersonalInfoModes:
    email: bool = False
    phone: bool = False
    full_name: bool = False
    name_alias: bool = False

@dataclass(frozen=True)
class PersonalInfoStep:
    enabled: bool
    modes: PersonalInfoModes = field(default_factory=PersonalInfoModes)

@dataclass(frozen=True)
class SimpleStep:
    enabled: bool

@dataclass(frozen=True)
class TimelineStep:
    enabled: bool
    years: int = 1

@dataclass(frozen=True)
class EmploymentHistoryStep:
    enabled: bool
    mode: EmploymentMode = 'years'
    years: int | None = 1
    employers: int | None = None

@dataclass(frozen=True)
class VerificationSteps:
    personal_info: PersonalInfoStep
    education: SimpleStep
    professional_license: SimpleStep
    residence_history: TimelineStep
    employment_history: EmploymentHistoryStep

@dataclass(frozen=True)
class ConsentsRequired:
    driver_license: bool = False
    drug_test: bool = False
    biometric: bool = False

    def any(self) -> bool:
        return self.driver_license or self.drug_test or self.biometric

@dataclass(frozen=True)
class SignatureRequirement:
    required: bool
    mode: SignatureMode

@dataclass(frozen=True)
class Requirements:
    language: str
    consents_required: ConsentsRequired
    verification_steps: VerificationSteps
    signature: SignatureRequirement


class KeyFormatError(ValueError):
    """A requirement key could not be decoded. Carries the key and the offending slot."""

    def __init__(self, key: str, slot: str, message: str) -> None:
        self.key = key
        self.slot = slot
        self.message = message
        super().__init__(f"Invalid requirement key {key!r} ({slot}): {message}")

# ===================================================================
# 2. BITSTRING FORM
# ===================================================================

# 3-bit duration code -> years. Unlisted patterns fall back to DEFAULT_YEARS.
YEARS_BY_CODE: dict[str, int] = {
    '000': 1,
    '001': 3,
    '010': 5,
    '011': 7,
    '100': 10,
}
DEFAULT_YEARS: int = 1

@dataclass(frozen=True)
class BitLayout:
    """Zero-based positions of each flag inside the 12-bit payload."""
    language_length: int = 2
    payload_length: int = 12
    driver_license: int = 0
    drug_test: int = 1
    biometric: int = 2
    education: int = 3
    professional_license: int = 4
    residence: int = 5
    residence_years: int = 6
    employment: int = 9
    employment_years: int = 10

    @property
    def key_length(self) -> int:
        return self.language_length + self.payload_length

DEFAULT_LAYOUT = BitLayout()

def years_from_code(bits: str, offset: int) -> int:
    """Reads a 3-bit duration window at `offset`, right-padding short windows with '0'."""
    window = bits[offset:offset + 3].ljust(3, '0')
    return YEARS_BY_CODE.get(window, DEFAULT_YEARS)

def _decode_bitstring(key: str, layout: BitLayout) -> Requirements:
    if len(key) != layout.key_length:
        raise KeyFormatError(key, 'length', f"expected {layout.key_length} characters, got {len(key)}")
    language = _check_language(key, key[:layout.language_length])
    bits = key[layout.language_length:]
    for position, char in enumerate(bits, start=1):
        if char not in '01':
            raise KeyFormatError(key, f"bit {position}", f"expected '0' or '1', got {char!r}")

    def flag(position: int) -> bool:
        return bits[position] == '1'

    return Requirements(
        language=language,
        consents_required=ConsentsRequired(
            driver_license=flag(layout.driver_license),
            drug_test=flag(layout.drug_test),
            biometric=flag(layout.biometric),
        ),
        verification_steps=VerificationSteps(
            # Not encoded in the bitstring: the identity basics are always collected.
            personal_info=PersonalInfoStep(
                enabled=True,
                modes=PersonalInfoModes(email=True, phone=True, full_name=True),
            ),
            education=SimpleStep(enabled=flag(layout.education)),
            professional_license=SimpleStep(enabled=flag(layout.professional_license)),
            residence_history=TimelineStep(
                enabled=flag(layout.residence),
                years=years_from_code(bits, layout.residence_years),
            ),
            employment_history=EmploymentHistoryStep(
                enabled=flag(layout.employment),
                mode='years',
                years=years_from_code(bits, layout.employment_years),
            ),
        ),
        signature=SignatureRequirement(required=True, mode=SignatureMode.CHECKBOX),
    )

# ===================================================================
# 3. FACET FORM
# ===================================================================

FACET_SLOTS: tuple[str, ...] = (
    'personal', 'consents', 'residence', 'employment', 'education', 'professional-license', 'signature',
)

_YEARS_ALTERNATION = '|'.join(str(y) for y in sorted(timeline_years, reverse=True))
_EMPLOYERS_CLASS = ''.join(str(c) for c in employer_counts)
PERSONAL_PATTERN: Pattern[str] = re.compile(r'^(?:N|(?!.*(.).*\1)[EPMA]+)$')
CONSENTS_PATTERN: Pattern[str] = re.compile(r'^(?:N|(?!.*(.).*\1)[DTB]+)$')
RESIDENCE_PATTERN: Pattern[str] = re.compile(rf'^(?:N|R(?:{_YEARS_ALTERNATION}))$')
EMPLOYMENT_PATTERN: Pattern[str] = re.compile(rf'^(?:N|E(?:{_YEARS_ALTERNATION})|EN[{_EMPLOYERS_CLASS}])$')
EDUCATION_PATTERN: Pattern[str] = re.compile(r'^[EN]$')
LICENSE_PATTERN: Pattern[str] = re.compile(r'^[PN]$')
SIGNATURE_PATTERN: Pattern[str] = re.compile(r'^[WCN]$')

FACET_GRAMMAR: dict[str, Pattern[str]] = {
    'personal': PERSONAL_PATTERN,
    'consents': CONSENTS_PATTERN,
    'residence': RESIDENCE_PATTERN,
    'employment': EMPLOYMENT_PATTERN,
    'education': EDUCATION_PATTERN,
    'professional-license': LICENSE_PATTERN,
    'signature': SIGNATURE_PATTERN,
}

SIGNATURE_BY_FACET: dict[str, SignatureMode] = {
    'W': SignatureMode.WET,
    'C': SignatureMode.CHECKBOX,
    'N': SignatureMode.NONE,
}

def years_from_facet(facet: str) -> int:
    """'R5' -> 5, 'E10' -> 10; 'N' or anything unmapped -> 1."""
    digits = facet[1:]
    if not digits.isdigit():
        return DEFAULT_YEARS
    years = int(digits)
    return years if years in timeline_years else DEFAULT_YEARS

def employer_count(facet: str) -> int:
    """'EN2' -> 2; anything else -> 1."""
    if not facet.startswith('EN') or len(facet) != 3 or not facet[2].isdigit():
        return 1
    count = int(facet[2])
    return count if count in employer_counts else 1

def _decode_facets(key: str) -> Requirements:
    parts = key.split('-')
    if len(parts) != len(FACET_SLOTS) + 1:
        raise KeyFormatError(key, 'length', f"expected {len(FACET_SLOTS) + 1} hyphen separated parts, got {len(parts)}")
    language = _check_language(key, parts[0])
    facets = dict(zip(FACET_SLOTS, parts[1:]))
    for slot, facet in facets.items():
        if not FACET_GRAMMAR[slot].fullmatch(facet):
            raise KeyFormatError(key, slot, f"unrecognised facet {facet!r}")

    personal = facets['personal']
    consents = facets['consents']
    residence = facets['residence']
    employment = facets['employment']
    employer_mode = employment.startswith('EN')
    signature_mode = SIGNATURE_BY_FACET[facets['signature']]

    return Requirements(
        language=language,
        consents_required=ConsentsRequired(
            driver_license='D' in consents,
            drug_test='T' in consents,
            biometric='B' in consents,
        ),
        verification_steps=VerificationSteps(
            # 'N' means no contact details, not no identity: the full name is still collected.
            personal_info=PersonalInfoStep(
                enabled=True,
                modes=PersonalInfoModes(
                    email='E' in personal,
                    phone='P' in personal,
                    full_name='M' in personal or personal == 'N',
                    name_alias='A' in personal,
                ),
            ),
            education=SimpleStep(enabled=facets['education'] == 'E'),
            professional_license=SimpleStep(enabled=facets['professional-license'] == 'P'),
            residence_history=TimelineStep(enabled=residence != 'N', years=years_from_facet(residence)),
            employment_history=EmploymentHistoryStep(
                enabled=employment != 'N',
                mode='employers' if employer_mode else 'years',
                years=None if employer_mode else years_from_facet(employment),
                employers=employer_count(employment) if employer_mode else None,
            ),
        ),
        signature=SignatureRequirement(required=signature_mode is not SignatureMode.NONE, mode=signature_mode),
    )

def _check_language(key: str, language: str) -> str:
    if len(language) != 2 or not language.isascii() or not language.isalpha():
        raise KeyFormatError(key, 'language', f"expected a 2-letter language code, got {language!r}")
    return language.lower()

# ===================================================================
# 4. PUBLIC ENTRY POINTS
# ===================================================================

def decode(key: str, layout: BitLayout = DEFAULT_LAYOUT) -> Requirements:
    """Decodes either key encoding. Any problem raises KeyFormatError; nothing is coerced."""
    if not isinstance(key, str) or not key:
        raise KeyFormatError(str(key), 'key', "key is empty")
    if '-' in key:
        requirements = _decode_facets(key)
    else:
        requirements = _decode_bitstring(key, layout)
    logger.debug(f"Decoded requirement key {key!r}: {requirements}")
    return requirements

def encode_facets(requirements: Requirements) -> str:
    """Renders requirements as their canonical facet key."""
    steps = requirements.verification_steps
    modes = steps.personal_info.modes
    personal = ''.join(letter for letter, on in (
        ('E', modes.email), ('P', modes.phone), ('M', modes.full_name), ('A', modes.name_alias)
    ) if on)
    if not steps.personal_info.enabled or not personal or personal == 'M':
        personal = 'N'
    consents_required = requirements.consents_required
    consents = ''.join(letter for letter, on in (
        ('D', consents_required.driver_license), ('T', consents_required.drug_test), ('B', consents_required.biometric)
    ) if on) or 'N'
    residence = f"R{steps.residence_history.years}" if steps.residence_history.enabled else 'N'
    employment_step = steps.employment_history
    if not employment_step.enabled:
        employment = 'N'
    elif employment_step.mode == 'employers':
        employment = f"EN{employment_step.employers or 1}"
    else:
        employment = f"E{employment_step.years or DEFAULT_YEARS}"
    signature = {mode: letter for letter, mode in SIGNATURE_BY_FACET.items()}[requirements.signature.mode]
    return '-'.join([
        requirements.language, personal, consents, residence, employment,
        'E' if steps.education.enabled else 'N',
        'P' if steps.professional_license.enabled else 'N',
        signature,
    ])

def requirements_to_dict(requirements: Requirements) -> dict[str, Any]:
    """Plain, JSON-ready view of the decoded requirements."""
    data = asdict(requirements)
    data['signature']['mode'] = requirements.signature.mode.value
    return data
