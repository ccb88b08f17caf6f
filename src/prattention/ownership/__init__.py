"""Code ownership: CODEOWNERS resolution and high-risk file classification."""

from prattention.ownership.codeowners import (
    FALLBACK_GROUP,
    OwnershipTable,
    normalize_pattern,
    parse_codeowners,
)
from prattention.ownership.highrisk import count_high_risk_files, is_high_risk, parse_high_risk
from prattention.ownership.resolver import OwnershipResolver

__all__ = [
    "FALLBACK_GROUP",
    "OwnershipTable",
    "OwnershipResolver",
    "normalize_pattern",
    "parse_codeowners",
    "parse_high_risk",
    "is_high_risk",
    "count_high_risk_files",
]
