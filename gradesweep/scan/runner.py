# gradesweep/scan/runner.py

import logging
import os
from pathlib import Path
from typing import List, Sequence

from tqdm import tqdm

from gradesweep.analysis.grading import is_passing
from gradesweep.models import BatchOutcome, HostResult, RunContext
from gradesweep.scan.host_scan import assess_host

LOG = logging.getLogger(__name__)


class HostListError(ValueError):
    pass


def read_host_list(path: Path) -> List[str]:
    try:
        text = path.read_text()
    except OSError as exc:
        raise HostListError(f"Can't read host list {path}: {exc}") from exc

    hosts = [ln.rstrip() for ln in text.split("\n")]
    hosts = [h for h in hosts if h]

    if not hosts:
        raise HostListError(f"File with hosts is empty: {path}")

    return hosts


def resolve_hosts(args: Sequence[str]) -> List[str]:
    """A single readable file argument is a host list, otherwise args are hosts."""
    if len(args) == 1:
        path = Path(args[0])
        if path.is_file() and os.access(path, os.R_OK):
            return read_host_list(path)

    hosts = [a.strip() for a in args if a.strip()]
    if not hosts:
        raise HostListError("No hosts given")

    return hosts


def host_passed(result: HostResult, perfect: bool = False) -> bool:
    return is_passing(result.grade, perfect) and not result.expiring_soon


def run_all(
    ctx: RunContext,
    hosts: Sequence[str],
    *,
    console=None,
    progress: bool = False,
) -> BatchOutcome:
    if not hosts:
        raise HostListError("No hosts given")

    outcome = BatchOutcome()

    # None disables the bar when stderr is not a terminal
    with tqdm(total=len(hosts), desc="Assessing hosts", disable=None if progress else True) as bar:
        for host in hosts:
            result = assess_host(ctx, host, console)
            ok = host_passed(result, ctx.perfect)
            outcome.add(result, ok)

            LOG.debug("%s %s", host, "passed" if ok else "failed")
            bar.update(1)

    return outcome
