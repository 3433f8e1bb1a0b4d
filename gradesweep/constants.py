# gradesweep/constants.py

from datetime import timedelta

VERSION = "1.0.0"
USER_AGENT = f"gradesweep/{VERSION}"

# runtime knobs
API_URL = "https://api.ssllabs.com/api/v4/"
REQUEST_TIMEOUT = 30  # seconds, per HTTP call

# poll delays (seconds)
DELAY_PRE_CHECK = 2
DELAY_PROGRESS = 6

# threshold units for --max-left, calendar approximations
DURATION_UNITS = {
    "d": timedelta(days=1),
    "w": timedelta(days=7),
    "m": timedelta(days=30),
    "y": timedelta(days=365),
}

# grade ordinals, lowest to highest
GRADE_ORDER = {
    "Err": -2,
    "M": -1,
    "T": 0,
    "F": 1,
    "E": 2,
    "D": 3,
    "C": 4,
    "B": 5,
    "A": 6,
    "A-": 7,
    "A+": 8,
}

GRADE_NUM = {
    "A+": 4.3,
    "A": 4.0,
    "A-": 3.7,
    "B": 3.0,
    "C": 2.0,
    "D": 1.0,
    "E": 0.5,
    "F": 0.0,
    "T": 0.0,
    "M": 0.0,
    "Err": 0.0,
}

GRADE_TIMEOUT = "T"
GRADE_MISMATCH = "M"
GRADE_ERROR = "Err"
SENTINEL_GRADES = frozenset({GRADE_TIMEOUT, GRADE_MISMATCH, GRADE_ERROR})

ROOT_STORES = ("Mozilla", "Apple", "Android", "Java", "Windows")
PROTOCOL_LIST = ("TLS 1.3", "TLS 1.2", "TLS 1.1", "TLS 1.0", "SSL 3.0", "SSL 2.0")
