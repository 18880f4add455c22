#!/usr/bin/env python3
"""
Main Entry Point

Reasoning graph analytics, knowledge-gap detection and cost estimation.
"""

import sys

from reasoning_graph.main import main

if __name__ == "__main__":
    sys.exit(main())
