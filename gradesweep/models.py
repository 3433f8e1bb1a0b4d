# gradesweep/models.py

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable


@dataclass(frozen=True)
class AnalyzeParams:
    """Submission options, built once per run and shared by every host."""

    public: bool = False
    start_new: bool = False
    from_cache: bool = True
    ignore_mismatch: bool = False

    @classmethod
    def from_options(
        cls, *, public: bool, avoid_cache: bool, ignore_mismatch: bool
    ) -> "AnalyzeParams":
        return cls(
            public=public,
            start_new=avoid_cache,
            from_cache=not avoid_cache,
            ignore_mismatch=ignore_mismatch,
        )


class AssessmentStatus(Enum):
    SUBMITTED = "DNS"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    ERROR = "ERROR"

    @classmethod
    def from_api(cls, tag: str | None) -> "AssessmentStatus":
        try:
            return cls((tag or "").upper())
        except ValueError:
            return cls.SUBMITTED

    @property
    def terminal(self) -> bool:
        return self in (AssessmentStatus.READY, AssessmentStatus.ERROR)


def _ms_to_datetime(value: int | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


@dataclass
class Cert:
    id: str = ""
    subject: str = ""
    issuer_subject: str = ""
    serial_number: str = ""
    common_names: list[str] = field(default_factory=list)
    alt_names: list[str] = field(default_factory=list)
    not_before: datetime | None = None
    not_after: datetime | None = None
    key_alg: str = ""
    key_size: int = 0
    key_strength: int = 0
    sig_alg: str = ""
    issues: int = 0
    revocation_info: int = 0
    revocation_status: int = 0
    crl_uris: list[str] = field(default_factory=list)
    ocsp_uris: list[str] = field(default_factory=list)
    sha256_hash: str = ""
    pin_sha256: str = ""
    validation_type: str = ""
    dns_caa: bool = False
    caa_policy: dict | None = None
    key_known_debian_insecure: bool = False

    @classmethod
    def from_api(cls, data: dict) -> "Cert":
        return cls(
            id=data.get("id", ""),
            subject=data.get("subject", ""),
            issuer_subject=data.get("issuerSubject", ""),
            serial_number=data.get("serialNumber", ""),
            common_names=list(data.get("commonNames") or []),
            alt_names=list(data.get("altNames") or []),
            not_before=_ms_to_datetime(data.get("notBefore")),
            not_after=_ms_to_datetime(data.get("notAfter")),
            key_alg=data.get("keyAlg", ""),
            key_size=data.get("keySize", 0),
            key_strength=data.get("keyStrength", 0),
            sig_alg=data.get("sigAlg", ""),
            issues=data.get("issues", 0),
            revocation_info=data.get("revocationInfo", 0),
            revocation_status=data.get("revocationStatus", 0),
            crl_uris=list(data.get("crlURIs") or []),
            ocsp_uris=list(data.get("ocspURIs") or []),
            sha256_hash=data.get("sha256Hash", ""),
            pin_sha256=data.get("pinSha256", ""),
            validation_type=data.get("validationType", ""),
            dns_caa=bool(data.get("dnsCaa", False)),
            caa_policy=data.get("caaPolicy"),
            key_known_debian_insecure=bool(data.get("keyKnownDebianInsecure", False)),
        )


@dataclass
class EndpointInfo:
    ip_address: str
    grade: str = ""
    server_name: str = ""
    status_message: str = ""
    status_details_message: str = ""
    duration: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "EndpointInfo":
        return cls(
            ip_address=data.get("ipAddress", ""),
            grade=data.get("grade", ""),
            server_name=data.get("serverName", ""),
            status_message=data.get("statusMessage", ""),
            status_details_message=data.get("statusDetailsMessage", ""),
            duration=data.get("duration", 0),
            details=data.get("details") or {},
        )


@dataclass
class AnalyzeInfo:
    """One snapshot of an assessment as returned by the analyze call."""

    host: str
    status: AssessmentStatus
    status_message: str = ""
    endpoints: list[EndpointInfo] = field(default_factory=list)
    certs: list[Cert] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "AnalyzeInfo":
        return cls(
            host=data.get("host", ""),
            status=AssessmentStatus.from_api(data.get("status")),
            status_message=data.get("statusMessage", ""),
            endpoints=[EndpointInfo.from_api(e) for e in data.get("endpoints") or []],
            certs=[Cert.from_api(c) for c in data.get("certs") or []],
        )


@dataclass
class ApiInfo:
    engine_version: str = ""
    criteria_version: str = ""
    max_assessments: int = 0
    current_assessments: int = 0
    new_assessment_cool_off: int = 0
    messages: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "ApiInfo":
        return cls(
            engine_version=data.get("engineVersion", ""),
            criteria_version=data.get("criteriaVersion", ""),
            max_assessments=data.get("maxAssessments", 0),
            current_assessments=data.get("currentAssessments", 0),
            new_assessment_cool_off=data.get("newAssessmentCoolOff", 0),
            messages=list(data.get("messages") or []),
        )


@dataclass
class EndpointResult:
    ip_address: str
    grade: str
    grade_num: float


@dataclass
class HostResult:
    host: str
    lowest_grade: str
    highest_grade: str
    lowest_grade_num: float = 0.0
    highest_grade_num: float = 0.0
    endpoints: list[EndpointResult] = field(default_factory=list)
    expiring_soon: bool = False
    expiry_message: str | None = None
    error: str | None = None
    # handle to the finished assessment, reused by the detailed report
    analysis: Any = field(default=None, repr=False, compare=False)

    @property
    def grade(self) -> str:
        return self.lowest_grade

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "lowestGrade": self.lowest_grade,
            "highestGrade": self.highest_grade,
            "lowestGradeNum": self.lowest_grade_num,
            "highestGradeNum": self.highest_grade_num,
            "endpoints": [
                {
                    "ipAddress": e.ip_address,
                    "grade": e.grade,
                    "gradeNum": e.grade_num,
                }
                for e in self.endpoints
            ],
        }


@dataclass
class BatchOutcome:
    hosts: list[HostResult] = field(default_factory=list)
    passed: list[bool] = field(default_factory=list)

    def add(self, result: HostResult, ok: bool) -> None:
        self.hosts.append(result)
        self.passed.append(ok)

    @property
    def all_passed(self) -> bool:
        return bool(self.hosts) and all(self.passed)


@dataclass
class RunContext:
    """Per-process state shared by every host assessment of one run."""

    client: Any
    params: AnalyzeParams
    max_left: timedelta = timedelta(0)
    perfect: bool = False
    banner_shown: bool = False
    sleep: Callable[[float], None] = time.sleep
