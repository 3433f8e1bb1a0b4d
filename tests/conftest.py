"""
Shared fakes for the assessment service.
"""
from datetime import datetime, timedelta, timezone

import pytest

from gradesweep.io.ssllabs import RequestError
from gradesweep.models import (
    AnalyzeInfo,
    AnalyzeParams,
    ApiInfo,
    AssessmentStatus,
    Cert,
    EndpointInfo,
    RunContext,
)


def snapshot(status, grades=(), host="example.com", certs=(), messages=None):
    endpoints = [
        EndpointInfo(
            ip_address=f"192.0.2.{i + 1}",
            grade=g,
            status_details_message=(messages or {}).get(i, ""),
        )
        for i, g in enumerate(grades)
    ]
    return AnalyzeInfo(
        host=host,
        status=status,
        status_message="Unable to resolve domain name" if status is AssessmentStatus.ERROR else "",
        endpoints=endpoints,
        certs=list(certs),
    )


def cert_expiring_in(delta: timedelta) -> Cert:
    return Cert(id="leaf", subject="CN=example.com", not_after=datetime.now(timezone.utc) + delta)


class FakeAnalysis:
    def __init__(self, host, snapshots, full=None):
        self.host = host
        self.snapshots = list(snapshots)
        self.full = full
        self.calls = []

    def info(self, detailed=False, from_cache=True):
        self.calls.append((detailed, from_cache))
        if detailed:
            if isinstance(self.full, Exception):
                raise self.full
            return self.full
        item = self.snapshots.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClient:
    def __init__(self, plans, api_info=None):
        self.plans = plans
        self.submitted = []
        self.info_calls = 0
        self.api_info = api_info or ApiInfo(
            max_assessments=25, current_assessments=0, messages=["Be nice."]
        )

    def analyze(self, host, params):
        self.submitted.append((host, params))
        plan = self.plans[host]
        if isinstance(plan, Exception):
            raise plan
        return plan

    def info(self):
        self.info_calls += 1
        return self.api_info


def ready(host, grades, full=None):
    """Analysis that reports READY on the first poll."""
    return FakeAnalysis(host, [snapshot(AssessmentStatus.READY, grades, host=host)], full=full)


def rejected(message="Running at full capacity"):
    return RequestError(message)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_ctx(sleeps):
    def factory(plans, **kw):
        return RunContext(
            client=FakeClient(plans),
            params=AnalyzeParams(),
            sleep=sleeps.append,
            **kw,
        )

    return factory
