"""
Batch runs over a host list
"""
from datetime import timedelta

import pytest

from gradesweep.models import AssessmentStatus, HostResult
from gradesweep.scan.runner import (
    HostListError,
    host_passed,
    read_host_list,
    resolve_hosts,
    run_all,
)

from conftest import cert_expiring_in, ready, rejected, snapshot


class TestRunAll:

    def test_mixed_grades_fail(self, make_ctx):
        ctx = make_ctx({"a.example": ready("a.example", ["A", "B"])})

        outcome = run_all(ctx, ["a.example"])

        result = outcome.hosts[0]
        assert (result.lowest_grade, result.highest_grade) == ("B", "A")
        assert outcome.passed == [False]
        assert outcome.all_passed is False

    def test_perfect_mode_a_plus_passes(self, make_ctx):
        ctx = make_ctx({"b.example": ready("b.example", ["A+"])}, perfect=True)

        outcome = run_all(ctx, ["b.example"])

        assert outcome.all_passed is True

    def test_perfect_mode_rejects_plain_a(self, make_ctx):
        ctx = make_ctx({"b.example": ready("b.example", ["A+", "A"])}, perfect=True)
        assert run_all(ctx, ["b.example"]).all_passed is False

    def test_expiring_certificate_fails_good_grade(self, make_ctx):
        full = snapshot(
            AssessmentStatus.READY,
            ["A+"],
            host="d.example",
            certs=[cert_expiring_in(timedelta(days=10, hours=1))],
        )
        ctx = make_ctx(
            {"d.example": ready("d.example", ["A+"], full=full)},
            max_left=timedelta(days=30),
        )

        outcome = run_all(ctx, ["d.example"])

        assert outcome.hosts[0].grade == "A+"
        assert outcome.hosts[0].expiring_soon is True
        assert outcome.hosts[0].expiry_message == "expires in 10 days"
        assert outcome.all_passed is False

    def test_failed_submission_does_not_stop_batch(self, make_ctx):
        ctx = make_ctx(
            {
                "one.example": ready("one.example", ["A"]),
                "two.example": rejected(),
                "three.example": ready("three.example", ["A+"]),
            }
        )

        outcome = run_all(ctx, ["one.example", "two.example", "three.example"])

        assert [h.host for h in outcome.hosts] == ["one.example", "two.example", "three.example"]
        assert [h.grade for h in outcome.hosts] == ["A", "T", "A+"]
        assert outcome.passed == [True, False, True]
        assert outcome.all_passed is False
        assert [host for host, _ in ctx.client.submitted] == [
            "one.example",
            "two.example",
            "three.example",
        ]

    def test_all_passing(self, make_ctx):
        ctx = make_ctx({"x.example": ready("x.example", ["A"]), "y.example": ready("y.example", ["A-"])})
        assert run_all(ctx, ["x.example", "y.example"]).all_passed is True

    def test_params_shared_by_every_host(self, make_ctx):
        ctx = make_ctx({"x.example": ready("x.example", ["A"]), "y.example": ready("y.example", ["A"])})
        run_all(ctx, ["x.example", "y.example"])
        assert {id(params) for _, params in ctx.client.submitted} == {id(ctx.params)}

    def test_empty_host_list(self, make_ctx):
        with pytest.raises(HostListError):
            run_all(make_ctx({}), [])


class TestHostPassed:

    def test_sentinels_fail(self):
        for grade in ("T", "M", "Err"):
            assert host_passed(HostResult("h", grade, grade)) is False

    def test_expiring_fails(self):
        assert host_passed(HostResult("h", "A+", "A+", expiring_soon=True)) is False

    def test_lowest_grade_decides(self):
        assert host_passed(HostResult("h", "A-", "A+")) is True
        assert host_passed(HostResult("h", "A-", "A+"), perfect=True) is False


class TestHostList:

    def test_blank_lines_dropped(self, tmp_path):
        path = tmp_path / "hosts.txt"
        path.write_text("\n\nc.example\n")
        assert read_host_list(path) == ["c.example"]

    def test_order_and_trailing_whitespace(self, tmp_path):
        path = tmp_path / "hosts.txt"
        path.write_text("b.example  \r\na.example\n\n")
        assert read_host_list(path) == ["b.example", "a.example"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "hosts.txt"
        path.write_text("\n\n")
        with pytest.raises(HostListError, match="empty"):
            read_host_list(path)

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(HostListError):
            read_host_list(tmp_path / "missing.txt")

    def test_single_file_argument(self, tmp_path):
        path = tmp_path / "hosts.txt"
        path.write_text("a.example\nb.example\n")
        assert resolve_hosts([str(path)]) == ["a.example", "b.example"]

    def test_unreadable_file_argument_is_a_host(self, tmp_path, monkeypatch):
        path = tmp_path / "hosts.txt"
        path.write_text("a.example\n")
        monkeypatch.setattr("gradesweep.scan.runner.os.access", lambda p, mode: False)
        assert resolve_hosts([str(path)]) == [str(path)]

    def test_host_arguments(self):
        assert resolve_hosts(["a.example", "b.example"]) == ["a.example", "b.example"]

    def test_no_hosts(self):
        with pytest.raises(HostListError):
            resolve_hosts([])
        with pytest.raises(HostListError):
            resolve_hosts(["  "])
