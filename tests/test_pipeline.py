"""Tests for critcompare.pipeline: the end-to-end comparison."""

from __future__ import annotations

import tempfile
import unittest
from collections import Counter
from pathlib import Path
from unittest.mock import MagicMock

from compare_test_helpers import FakeCargoProject

from critcompare.config import CompareConfig
from critcompare.errors import BuildError, CheckoutError, ConfigError, CopyError, PostError, RunError
from critcompare.pipeline import run_comparison

CASES = {
    "changes": {
        "modules-111": ["character module", "directory module – home dir"],
        "prompt-222": ["full prompt", "new in pr"],
    },
    "base": {
        "modules-111": ["character module", "directory module – home dir"],
        "prompt-222": ["full prompt", "removed in pr"],
    },
}


class PipelineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        tmp = Path(self._tmp.name)
        self.root = tmp / "project"
        self.root.mkdir()
        self.scratch = tmp / "scratch"
        self.scratch.mkdir()
        self.output_file = tmp / "github_output"
        self.environ = {"GITHUB_OUTPUT": str(self.output_file)}
        self.project = FakeCargoProject(self.root, CASES)
        self.poster = MagicMock(return_value=987)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _config(self, **overrides: object) -> CompareConfig:
        values: dict[str, object] = {
            "token": "tok",
            "branch_name": "main",
            "cwd": self.root,
            "sha": "abcdef0123456789",
            "repository": "octo/prompt",
            "issue_number": 12,
        }
        values.update(overrides)
        return CompareConfig(**values)  # type: ignore[arg-type]

    def _run(self, config: CompareConfig | None = None):
        return run_comparison(
            config or self._config(),
            self.project,
            poster=self.poster,
            environ=self.environ,
            scratch_root=self.scratch,
        )


class TestRunComparison(PipelineTestCase):
    def test_posts_report(self) -> None:
        outcome = self._run()

        self.assertEqual(outcome.comment_id, 987)
        self.assertTrue(outcome.posted)
        self.assertIsNone(outcome.fallback_table)
        config, body = self.poster.call_args.args
        self.assertEqual(config.issue_number, 12)
        self.assertTrue(body.startswith("## Benchmark for abcdef0\n"))
        self.assertIn("| full prompt | 46.0±0.90ms | 42.7±0.79ms | -7.17% |  |", body)
        self.assertEqual(body, outcome.markdown)

    def test_command_sequence(self) -> None:
        self._run()
        commands = self.project.commands()
        self.assertEqual(commands[0], ("cargo", "install", "critcmp"))
        self.assertEqual(commands[1], ("cargo", "bench", "--no-run"))
        self.assertEqual(commands[-1], ("critcmp", "base", "changes"))
        checkouts = [c for c in commands if c[0] == "git"]
        # base build, back, then per-case switches, then final restore
        self.assertEqual(checkouts[:2], [("git", "checkout", "main"), ("git", "checkout", "-")])
        self.assertEqual(checkouts[-1], ("git", "checkout", "-"))
        self.assertEqual(self.project.branch, "changes")

    def test_each_case_runs_on_its_own_branch(self) -> None:
        outcome = self._run()
        for run in self.project.bench_runs:
            with self.subTest(case=run.case, baseline=run.baseline):
                self.assertEqual(run.built_on, run.baseline)
                self.assertEqual(run.checked_out, run.baseline)

        counts = Counter(run.case for run in self.project.bench_runs)
        self.assertEqual(counts["full prompt"], 2)
        self.assertEqual(counts["new in pr"], 1)
        self.assertEqual(counts["removed in pr"], 1)
        self.assertEqual(len(outcome.case_runs), len(self.project.bench_runs))

    def test_checkouts_match_transitions(self) -> None:
        outcome = self._run()
        git_calls = [c for c in self.project.commands() if c[0] == "git"]
        self.assertEqual(outcome.checkouts, len(git_calls))
        branch = "changes"
        transitions = 0
        for call in self.project.commands():
            if call[0] == "git":
                continue
            if "--save-baseline" in call:
                needed = call[-1]
                if needed != branch:
                    transitions += 1
                    branch = needed
        # Two checkouts around the base build, plus one per switch, plus restore.
        restore = 1 if branch == "base" else 0
        self.assertEqual(outcome.checkouts, 2 + transitions + restore)

    def test_sets_outputs(self) -> None:
        self._run()
        text = self.output_file.read_text(encoding="utf-8")
        self.assertIn("stdout<<", text)
        self.assertIn("stderr<<", text)
        self.assertIn("comment-id<<", text)
        self.assertIn("987", text)
        self.assertIn("full prompt", text)

    def test_skip_critcmp_install(self) -> None:
        self._run(self._config(install_critcmp=False))
        self.assertNotIn(("cargo", "install", "critcmp"), self.project.commands())

    def test_cargo_options_forwarded(self) -> None:
        self._run(self._config(bench_name="prompt", features="simd", default_features=False))
        builds = [c for c in self.project.commands() if c[:2] == ("cargo", "bench")]
        self.assertEqual(len(builds), 2)
        for build in builds:
            self.assertEqual(
                build,
                (
                    "cargo",
                    "bench",
                    "--bench",
                    "prompt",
                    "--no-default-features",
                    "--features",
                    "simd",
                    "--no-run",
                ),
            )


class TestReportDelivery(PipelineTestCase):
    def test_post_failure_falls_back_to_table(self) -> None:
        self.poster.side_effect = PostError("HTTP 403", status_code=403)
        with self.assertLogs("critcompare", level="WARNING") as logs:
            outcome = self._run()

        self.assertIsNone(outcome.comment_id)
        assert outcome.fallback_table is not None
        self.assertIn("full prompt", outcome.fallback_table)
        self.assertIn("-7.4", outcome.fallback_table)
        self.assertTrue(any("Failed to comment" in line for line in logs.output))
        self.assertNotIn("comment-id", self.output_file.read_text(encoding="utf-8"))

    def test_no_post(self) -> None:
        outcome = self._run(self._config(post_comment=False))
        self.poster.assert_not_called()
        self.assertIsNotNone(outcome.fallback_table)
        self.assertTrue(outcome.markdown.startswith("## Benchmark for"))


class TestAborts(PipelineTestCase):
    def test_build_failure_aborts(self) -> None:
        self.project.fail_on("cargo", "bench")
        with self.assertRaises(BuildError):
            self._run()
        self.assertNotIn("critcmp", [c[0] for c in self.project.commands()])
        self.poster.assert_not_called()

    def test_checkout_failure_aborts(self) -> None:
        self.project.fail_on("git", "checkout", "main")
        with self.assertRaises(CheckoutError):
            self._run()
        self.poster.assert_not_called()

    def test_benchmark_failure_aborts(self) -> None:
        self.project.fail_on("prompt-222", "--bench", "full prompt")
        with self.assertRaises(RunError):
            self._run()
        self.poster.assert_not_called()
        self.assertFalse(self.output_file.exists())

    def test_critcmp_failure_aborts(self) -> None:
        self.project.fail_on("critcmp")
        with self.assertRaises(RunError):
            self._run()
        self.poster.assert_not_called()

    def test_copy_failure_aborts(self) -> None:
        with self.assertRaises(CopyError):
            run_comparison(
                self._config(),
                self.project,
                poster=self.poster,
                environ=self.environ,
                scratch_root=self.root / "missing",
            )

    def test_invalid_config_runs_nothing(self) -> None:
        with self.assertRaises(ConfigError):
            self._run(self._config(branch_name=""))
        self.assertEqual(self.project.calls, [])


if __name__ == "__main__":
    unittest.main()
