"""Tests for critcompare.runner: running cases on the right branch."""

from __future__ import annotations

import unittest
from collections import Counter
from pathlib import Path

from compare_test_helpers import Call, FakeRunner, failed, ok

from critcompare.branches import BranchContext, BranchSwitcher
from critcompare.errors import RunError
from critcompare.runner import case_order, run_benchmarks, run_case

CHANGES_A = Path("/scratch/c/a-1")
CHANGES_B = Path("/scratch/c/b-2")
BASE_A = Path("/scratch/b/a-1")
BASE_B = Path("/scratch/b/b-2")


def _describe(runner: FakeRunner) -> list[str]:
    """Calls as short strings: 'git checkout main', 'c/a-1 x changes'."""
    out = []
    for call in runner.calls:
        if call.command == "git":
            out.append("git " + " ".join(call.args))
        else:
            where = f"{Path(call.command).parent.name}/{call.name}"
            out.append(f"{where} {call.args[1]} {call.args[3]}")
    return out


class TestCaseOrder(unittest.TestCase):
    def test_changes_first_then_base_only(self) -> None:
        changes = {"a": CHANGES_A, "b": CHANGES_A, "c": CHANGES_B}
        base = {"d": BASE_B, "a": BASE_A}
        self.assertEqual(case_order(changes, base), ["a", "b", "c", "d"])


class TestRunCase(unittest.TestCase):
    def test_arguments(self) -> None:
        runner = FakeRunner()
        run_case(runner, "full prompt", CHANGES_A, "changes", cwd=Path("/w"))
        call = runner.calls[0]
        self.assertEqual(call.command, str(CHANGES_A))
        self.assertEqual(call.args, ("--bench", "full prompt", "--save-baseline", "changes"))
        self.assertEqual(call.cwd, Path("/w"))

    def test_failure(self) -> None:
        runner = FakeRunner(lambda call: failed(stderr="panicked"))
        with self.assertRaises(RunError):
            run_case(runner, "x", CHANGES_A, "changes")

    def test_benchmark_output_logged(self) -> None:
        report = "full prompt             time:   [42.1 ms 42.7 ms 43.5 ms]"
        runner = FakeRunner(lambda call: ok(stdout=report + "\n"))
        with self.assertLogs("critcompare.runner", level="INFO") as logs:
            run_case(runner, "full prompt", CHANGES_A, "changes")
        self.assertTrue(any(report in line for line in logs.output))

    def test_failure_output_logged(self) -> None:
        runner = FakeRunner(lambda call: failed(stderr="thread 'main' panicked"))
        with self.assertLogs("critcompare.runner", level="INFO") as logs:
            with self.assertRaises(RunError):
                run_case(runner, "x", CHANGES_A, "changes")
        self.assertTrue(any("panicked" in line for line in logs.output))


class TestRunBenchmarks(unittest.TestCase):
    def _run(self, changes: dict[str, Path], base: dict[str, Path], runner: FakeRunner):
        switcher = BranchSwitcher(runner, "main")
        runs = run_benchmarks(runner, changes, base, switcher)
        return runs, switcher

    def test_mixed_catalogs(self) -> None:
        runner = FakeRunner()
        changes = {"a": CHANGES_A, "b": CHANGES_A, "c": CHANGES_B}
        base = {"a": BASE_A, "b": BASE_A, "d": BASE_B}
        runs, switcher = self._run(changes, base, runner)

        self.assertEqual(
            _describe(runner),
            [
                "c/a-1 a changes",
                "git checkout main",
                "b/a-1 a base",
                "git checkout -",
                "c/a-1 b changes",
                "git checkout main",
                "b/a-1 b base",
                "git checkout -",
                "c/b-2 c changes",
                "git checkout main",
                "b/b-2 d base",
                "git checkout -",
            ],
        )
        self.assertIs(switcher.state, BranchContext.ON_CHANGES)
        self.assertEqual(switcher.checkouts, 6)
        self.assertEqual(len(runs), 6)

    def test_run_counts_follow_catalog_membership(self) -> None:
        runner = FakeRunner()
        changes = {"both": CHANGES_A, "new": CHANGES_A}
        base = {"both": BASE_A, "removed": BASE_A}
        runs, _ = self._run(changes, base, runner)

        counts = Counter(r.case for r in runs)
        self.assertEqual(counts, {"both": 2, "new": 1, "removed": 1})
        baselines = {(r.case, r.baseline) for r in runs}
        self.assertEqual(
            baselines,
            {("both", "changes"), ("both", "base"), ("new", "changes"), ("removed", "base")},
        )

    def test_runs_happen_on_owning_branch(self) -> None:
        state = {"branch": "changes"}

        def handler(call: Call):
            if call.command == "git":
                state["branch"] = "base" if call.args[1] == "main" else "changes"
                return None
            expected = "changes" if call.args[3] == "changes" else "base"
            self.assertEqual(state["branch"], expected)
            return None

        runner = FakeRunner(handler)
        self._run({"a": CHANGES_A, "b": CHANGES_B}, {"b": BASE_B, "c": BASE_A}, runner)
        self.assertEqual(state["branch"], "changes")

    def test_consecutive_changes_cases_need_no_checkout(self) -> None:
        runner = FakeRunner()
        _, switcher = self._run({"a": CHANGES_A, "b": CHANGES_A, "c": CHANGES_B}, {}, runner)
        self.assertEqual(switcher.checkouts, 0)
        self.assertFalse(any(c.command == "git" for c in runner.calls))

    def test_consecutive_base_cases_share_one_checkout(self) -> None:
        runner = FakeRunner()
        _, switcher = self._run({}, {"x": BASE_A, "y": BASE_A, "z": BASE_B}, runner)
        self.assertEqual(
            _describe(runner),
            [
                "git checkout main",
                "b/a-1 x base",
                "b/a-1 y base",
                "b/b-2 z base",
                "git checkout -",
            ],
        )
        self.assertEqual(switcher.checkouts, 2)

    def test_empty_catalogs(self) -> None:
        runner = FakeRunner()
        runs, switcher = self._run({}, {}, runner)
        self.assertEqual(runs, [])
        self.assertEqual(runner.calls, [])
        self.assertEqual(switcher.checkouts, 0)

    def test_run_failure_aborts_without_restore(self) -> None:
        def handler(call: Call):
            if call.command != "git" and call.args[1] == "b":
                return failed()
            return None

        runner = FakeRunner(handler)
        switcher = BranchSwitcher(runner, "main")
        with self.assertRaises(RunError):
            run_benchmarks(runner, {"a": CHANGES_A}, {"a": BASE_A, "b": BASE_B}, switcher)
        self.assertEqual(_describe(runner)[-1], "b/b-2 b base")
        self.assertIs(switcher.state, BranchContext.ON_BASE)


if __name__ == "__main__":
    unittest.main()
