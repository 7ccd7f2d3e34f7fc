import io
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import MagicMock, patch

import run_with_logs


def fake_process(lines, returncode=0):
    process = MagicMock()
    process.stdout = iter(lines)
    process.wait.return_value = returncode
    return process


class TestRunWithLogs(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def _run(self, lines, returncode=0, args=("https://example.com", "1")):
        with patch("run_with_logs.subprocess.Popen", return_value=fake_process(lines, returncode)) as popen:
            with redirect_stdout(io.StringIO()):
                code = run_with_logs.run_crawler(list(args), log_dir=self.tmp.name)
        logs = os.listdir(self.tmp.name)
        self.assertEqual(len(logs), 1)
        with open(os.path.join(self.tmp.name, logs[0]), encoding="utf-8") as f:
            return code, popen, f.read()

    def test_successful_run_is_logged(self):
        code, popen, text = self._run(["Fetching URL: https://example.com\n", "CRAWL SESSION SUMMARY\n"])
        self.assertEqual(code, 0)
        cmd = popen.call_args.args[0]
        self.assertEqual(cmd[:2], [sys.executable, "-u"])
        self.assertTrue(cmd[2].endswith("main.py"))
        self.assertEqual(cmd[3:], ["https://example.com", "1"])
        self.assertIn("Fetching URL: https://example.com", text)
        self.assertIn("PROCESS EXIT CODE: 0", text)
        self.assertNotIn("SESSION INVALID", text)

    def test_missing_summary_is_invalid(self):
        code, _, text = self._run(["Fetching URL: https://example.com\n"])
        self.assertEqual(code, 1)
        self.assertIn("SESSION INVALID", text)

    def test_nonzero_exit_is_propagated(self):
        code, _, text = self._run(["usage: crawl ...\n"], returncode=1, args=("https://example.com", "-1"))
        self.assertEqual(code, 1)
        self.assertIn("PROCESS EXIT CODE: 1", text)


if __name__ == "__main__":
    unittest.main()
