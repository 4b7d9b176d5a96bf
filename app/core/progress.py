"""
Progress Vocabulary Module

Fixed lookup tables for the FTTH rollout workflow. ``PROGRESS_MAPPING`` is the
only place where ``status``, ``uic`` and ``persentase`` are derived from a
project's ``progress``; import, manual create and manual update all call
``derive_progress_fields``.
"""
import re
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Tuple

UIC_PLANNING = "PLANNING"
UIC_DEPLOYMENT = "DEPLOYMENT"
UIC_SHARED = "PLANNING & DEPLOYMENT"


class ProgressFields(NamedTuple):
    status: str
    uic: str
    percentage: int


# Ordered as the workflow advances; dict order is relied on for suggestions
PROGRESS_MAPPING: Mapping[str, ProgressFields] = MappingProxyType({
    "REJECT": ProgressFields("CANCEL", UIC_SHARED, 0),
    "PENDING / HOLD": ProgressFields("PENDING", UIC_SHARED, 0),
    "CREATED BOQ": ProgressFields("DESAIN", UIC_PLANNING, 1),
    "CHECKED BOQ": ProgressFields("DESAIN", UIC_PLANNING, 10),
    "BEP": ProgressFields("DESAIN", UIC_PLANNING, 15),
    "APPROVED": ProgressFields("DESAIN", UIC_PLANNING, 20),
    "SPK SURVEY": ProgressFields("DESAIN", UIC_PLANNING, 25),
    "SURVEY": ProgressFields("DESAIN", UIC_PLANNING, 30),
    "DRM": ProgressFields("DESAIN", UIC_PLANNING, 35),
    "APPROVED BOQ DRM": ProgressFields("DESAIN", UIC_PLANNING, 40),
    "SPK": ProgressFields("DESAIN", UIC_PLANNING, 45),
    "MOS": ProgressFields("CONSTRUCTION", UIC_DEPLOYMENT, 50),
    "PERIZINAN": ProgressFields("CONSTRUCTION", UIC_DEPLOYMENT, 55),
    "CONST": ProgressFields("CONSTRUCTION", UIC_DEPLOYMENT, 60),
    "COMMTEST": ProgressFields("CONSTRUCTION", UIC_DEPLOYMENT, 70),
    "UT": ProgressFields("CONSTRUCTION", UIC_DEPLOYMENT, 75),
    "REKON": ProgressFields("RFS", UIC_DEPLOYMENT, 80),
    "BAST": ProgressFields("RFS", UIC_DEPLOYMENT, 85),
    "BALOP": ProgressFields("RFS", UIC_DEPLOYMENT, 90),
    "DONE": ProgressFields("DEPLOYMENT", UIC_DEPLOYMENT, 100),
})

# Applied when progress is blank
DEFAULT_PROGRESS_FIELDS = ProgressFields("PENDING", UIC_SHARED, 0)

VALID_PROGRESS: Tuple[str, ...] = tuple(PROGRESS_MAPPING)

# Stages selectable by each division in the manual entry forms
PLANNING_PROGRESS: Tuple[str, ...] = tuple(
    key for key, fields in PROGRESS_MAPPING.items() if fields.uic != UIC_DEPLOYMENT
)
DEPLOYMENT_PROGRESS: Tuple[str, ...] = tuple(
    key for key, fields in PROGRESS_MAPPING.items() if fields.uic == UIC_DEPLOYMENT
)

PROGRESS_ALIASES: Mapping[str, str] = MappingProxyType({
    "HOLD": "PENDING / HOLD",
    "PENDING": "PENDING / HOLD",
    "CANCEL": "REJECT",
    "CANCELLED": "REJECT",
    "CANCELED": "REJECT",
    "RFS": "REKON",
    "READY FOR SERVICE": "REKON",
    "CONSTRUCTION": "CONST",
    "COMPLETE": "DONE",
    "COMPLETED": "DONE",
    "FINISH": "DONE",
    "FINISHED": "DONE",
    "DEPLOYMENT": "DONE",
})

VALID_REGIONALS: Tuple[str, ...] = ("BANTEN", "JABAR", "JABODEBEK", "JATENGKAL", "JATIM", "SULAWESI")

VALID_CIRCULIR_STATUS: Tuple[str, ...] = ("ongoing", "hold", "reject")

# "18. BAST", "18.BAST", "18 BAST", "18BAST"
_NUMBER_PREFIX_RE = re.compile(r"^\d+\.?\s*")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_number_prefix(value: str) -> str:
    """Remove a leading ``<digits>`` / ``<digits>.`` token and surrounding whitespace."""
    return _NUMBER_PREFIX_RE.sub("", value.strip(), count=1).strip()


def normalize_regional(value: str) -> str:
    return strip_number_prefix(value).upper()


def normalize_circulir_status(value: str) -> str:
    return strip_number_prefix(value).lower()


def normalize_progress(value: str) -> str:
    """
    Normalize a raw progress cell to its canonical spelling.

    Numbered prefixes are dropped, case and inner whitespace are folded and
    known aliases are resolved. The result is not guaranteed to be canonical;
    check membership in ``PROGRESS_MAPPING`` afterwards.
    """
    normalized = _WHITESPACE_RE.sub(" ", strip_number_prefix(value).upper())
    return PROGRESS_ALIASES.get(normalized, normalized)


def suggest_progress(candidate: str) -> Optional[str]:
    """Best-effort "did you mean" lookup against the canonical progress set."""
    lowered = candidate.lower()
    for valid in VALID_PROGRESS:
        if lowered in valid.lower() or valid.lower() in lowered:
            return valid
    for valid in VALID_PROGRESS:
        if valid.lower().startswith(lowered):
            return valid
    return None


def derive_progress_fields(progress: Optional[str]) -> ProgressFields:
    """Return ``(status, uic, percentage)`` for a canonical progress value."""
    if not progress:
        return DEFAULT_PROGRESS_FIELDS
    return PROGRESS_MAPPING.get(progress, DEFAULT_PROGRESS_FIELDS)
