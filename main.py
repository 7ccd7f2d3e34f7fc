#!/usr/bin/env python3
"""
Entry point for the bounded-depth crawler.
Usage: python main.py <start-url> <max-depth> [worker-count]
"""

import sys

from depthcrawler.cli import main

if __name__ == "__main__":
    sys.exit(main())
