#!/usr/bin/env python3
# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Test runner for prlander unit tests.

Usage:
    python run_tests.py                     # Run all tests
    python run_tests.py -v                  # Run with verbose output
    python run_tests.py tests/utils         # Run tests in a directory
    python run_tests.py tests/test_workspace.py  # Run specific file
    python run_tests.py tests/test_status_waiter.py::TestStatusWaiter  # Run specific class
    python run_tests.py -k "timeout"        # Run tests matching pattern
    python run_tests.py --lf                # Run last failed tests
    python run_tests.py -x                  # Stop on first failure
"""

import subprocess
import sys


def main():
    cmd = [sys.executable, "-m", "pytest"]
    args = sys.argv[1:]

    has_test_path = any(
        arg.startswith("tests") or arg.endswith(".py")
        for arg in args
        if not arg.startswith("-")
    )
    if not has_test_path:
        cmd.append("tests/")

    cmd.extend(args)
    result = subprocess.run(cmd)
    sys.exit(result.returncode)


if __name__ == "__main__":
    main()
