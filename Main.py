#!/usr/bin/env python3
"""

Usage:
    python Main.py [-a localhost:5672] [-c -1] [-t topic] [-l] [-i 5]

Or
    python -m latency_receiver [-a localhost:5672] [-c -1] [-t topic] [-l] [-i 5]
"""

from latency_receiver.__main__ import main

if __name__ == "__main__":
    main()
