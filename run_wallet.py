#!/usr/bin/env python3
"""
CLC Cold Wallet runner — the same CLI as the ``clc-cold-wallet`` script,
usable straight from a checkout.

Usage:
    python run_wallet.py decrypt my.wallet --print
    python run_wallet.py coins --validate
    python run_wallet.py logout my.wallet

Environment variables (alternative to flags):
    CLC_COLD_CONFIG, CLC_COLD_SESSION, CLC_COLD_LEDGER_URL,
    CLC_COLD_TIMEOUT, CLC_COLD_LOG_LEVEL, CLC_COLD_LOG_FMT
"""

from __future__ import annotations

import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from clc_cold.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
