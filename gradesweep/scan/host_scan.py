# gradesweep/scan/host_scan.py

from __future__ import annotations

import logging

from gradesweep.analysis.expiry import expiry_message
from gradesweep.analysis.grading import get_grades, grade_num, norm_grade
from gradesweep.constants import DELAY_PRE_CHECK, DELAY_PROGRESS, GRADE_ERROR, GRADE_TIMEOUT
from gradesweep.io.ssllabs import SSLLabsError
from gradesweep.models import (
    AssessmentStatus,
    EndpointInfo,
    EndpointResult,
    HostResult,
    RunContext,
)

LOG = logging.getLogger(__name__)


def status_in_progress(endpoints: list[EndpointInfo]) -> str:
    """Progress message of the endpoint currently being tested, if any."""
    if len(endpoints) == 1:
        return endpoints[0].status_details_message

    for num, endpoint in enumerate(endpoints):
        if endpoint.grade:
            continue
        if endpoint.status_details_message:
            return f"#{num}: {endpoint.status_details_message}"

    return ""


def sentinel_result(host: str, grade: str, error: str | None = None) -> HostResult:
    return HostResult(
        host=host,
        lowest_grade=grade,
        highest_grade=grade,
        lowest_grade_num=grade_num(grade),
        highest_grade_num=grade_num(grade),
        error=error,
    )


def summarize(host: str, endpoints: list[EndpointInfo]) -> HostResult:
    if not endpoints:
        return sentinel_result(host, GRADE_TIMEOUT, "no endpoints reported")

    results = [
        EndpointResult(e.ip_address, norm_grade(e.grade), grade_num(norm_grade(e.grade)))
        for e in endpoints
    ]
    lowest, highest = get_grades(e.grade for e in results)

    return HostResult(
        host=host,
        lowest_grade=lowest,
        highest_grade=highest,
        lowest_grade_num=grade_num(lowest),
        highest_grade_num=grade_num(highest),
        endpoints=results,
    )


def show_banner(ctx: RunContext, console) -> None:
    if ctx.banner_shown:
        return
    ctx.banner_shown = True

    try:
        info = ctx.client.info()
    except SSLLabsError as exc:
        LOG.warning("can't fetch service info: %s", exc)
        return

    console.banner(info)


def assess_host(ctx: RunContext, host: str, console=None) -> HostResult:
    """
    Drive one host's assessment to a terminal state.

    Failures never propagate: a rejected submission yields the timeout
    sentinel, a failed poll or an ERROR status yields the error sentinel.
    """
    if console is not None:
        show_banner(ctx, console)
        console.progress(host, "Preparing for tests")

    LOG.info("→ submitting %s", host)

    try:
        analysis = ctx.client.analyze(host, ctx.params)
    except SSLLabsError as exc:
        LOG.info("%s: submission failed: %s", host, exc)
        if console is not None:
            console.failure(host, str(exc))
        return sentinel_result(host, GRADE_TIMEOUT, str(exc))

    while True:
        try:
            info = analysis.info(detailed=False, from_cache=ctx.params.from_cache)
        except SSLLabsError as exc:
            LOG.info("%s: poll failed: %s", host, exc)
            if console is not None:
                console.failure(host, str(exc))
            return sentinel_result(host, GRADE_ERROR, str(exc))

        if info.status.terminal:
            break

        if console is not None and info.endpoints:
            message = status_in_progress(info.endpoints)
            if message:
                console.progress(host, message)

        if info.status is AssessmentStatus.IN_PROGRESS:
            ctx.sleep(DELAY_PROGRESS)
        else:
            ctx.sleep(DELAY_PRE_CHECK)

    if info.status is AssessmentStatus.ERROR:
        if console is not None:
            console.failure(host, info.status_message)
        return sentinel_result(host, GRADE_ERROR, info.status_message)

    result = summarize(host, info.endpoints)
    result.analysis = analysis

    if ctx.max_left and info.endpoints:
        result.expiry_message = expiry_message(analysis, ctx.max_left)
        result.expiring_soon = result.expiry_message is not None

    if console is not None:
        console.grade(result)

    LOG.info("← finished %s – %s/%s", host, result.lowest_grade, result.highest_grade)
    return result
