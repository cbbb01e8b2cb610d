from __future__ import annotations

import re

NO_ALERT = "NA"

_SPLIT_RE = re.compile(r"[,\s]+")

# Used for surveys that carry no codes of their own.
DEFAULT_ALERT_CODES = {
    "1": "A catch was reported, but no taxon was specified",
    "2": "A taxon was specified, but no information was provided about the number of fish, their size, or their weight",
    "3": "Length is smaller than minimum length threshold for the selected catch taxon",
    "4": "Length exceeds maximum length threshold for the selected catch taxon",
    "5": "Bucket weight exceeds maximum (50kg)",
    "6": "Number of buckets exceeds maximum (300)",
    "7": "Number of individuals exceeds maximum (100)",
    "8": "Price per kg exceeds threshold",
    "9": "Catch per unit effort exceeds maximum (30kg per hour per fisher)",
    "10": "Revenue per unit effort exceeds threshold",
}


def has_alert(flag) -> bool:
    """Only the empty string and the exact literal "NA" mean "no alert".

    The value is compared as stored: whitespace around "NA" makes it an alert.
    """
    if flag is None:
        return False
    s = str(flag)
    return s != "" and s != NO_ALERT


def split_alert_codes(flag) -> list[str]:
    # The pipeline joins codes with ", " in flag partitions and " " in stats.
    if not has_alert(flag):
        return []
    return [c for c in _SPLIT_RE.split(str(flag).strip()) if c]
