"""
Runs main.py with the given arguments, streams its output live and keeps a timestamped copy
under logs/. A run whose output never reached the summary banner is reported as invalid.
"""

import os
import subprocess
import sys
from datetime import datetime

from depthcrawler.metrics import SUMMARY_BANNER

MAIN_SCRIPT = os.path.join(os.path.dirname(os.path.abspath(__file__)), "main.py")


def build_command(args):
    # Unbuffered so log lines reach the file as they happen
    return [sys.executable, "-u", MAIN_SCRIPT] + list(args)


def run_crawler(args=None, log_dir="logs"):
    args = sys.argv[1:] if args is None else args
    cmd = build_command(args)

    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = os.path.join(log_dir, f"crawl_session_{timestamp}.txt")

    print("--- STARTING CRAWLER WRAPPER ---")
    print(f"Log File: {log_filename}")
    print(f"Command:  {' '.join(cmd)}")
    print("--------------------------------\n")

    summary_found = False
    process = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
    )

    with open(log_filename, "w", encoding="utf-8") as f:
        f.write(f"--- Crawl Log: {timestamp} ---\n")
        f.write(f"--- Command: {' '.join(cmd)} ---\n\n")

        for line in process.stdout:
            sys.stdout.write(line)
            sys.stdout.flush()
            f.write(line)
            f.flush()
            if SUMMARY_BANNER in line:
                summary_found = True

    returncode = process.wait()

    with open(log_filename, "a", encoding="utf-8") as f:
        f.write(f"\n--- PROCESS EXIT CODE: {returncode} ---\n")
        if not summary_found:
            f.write("--- SUMMARY NOT FOUND: SESSION INVALID ---\n")

    if returncode != 0:
        print(f"\nCrawler exited with non-zero status code: {returncode}")
        return returncode

    if not summary_found:
        print("\n" + "!" * 40)
        print("ERROR: Crawl finished without terminal summary.")
        print("!" * 40)
        return 1

    print("\n--- WRAPPER COMPLETED SUCCESSFULLY ---")
    return 0


if __name__ == "__main__":
    sys.exit(run_crawler())
