"""
Clinical Scoring Engine Configuration
=====================================
Runtime settings read from the environment (and an optional project-level
.env file). Clinical thresholds are not configurable; they live beside the
rules that use them.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# ── Paths ───────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
PACKAGE_DIR = Path(__file__).resolve().parent

# ── Load .env ───────────────────────────────────────────────────────────
load_dotenv(PROJECT_ROOT / ".env")

# ── Logging ─────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("CLINICAL_SCORING_LOG_LEVEL", "INFO")
LOG_FILE: str = os.getenv("CLINICAL_SCORING_LOG_FILE", "")

# ── Learning-state persistence ──────────────────────────────────────────
STATE_PATH: str = os.getenv("CLINICAL_SCORING_STATE_PATH", "")    # empty = in-memory

# ── Readmission model hyper-parameters ─────────────────────────────────
LEARNING_RATE = float(os.getenv("CLINICAL_SCORING_LEARNING_RATE", "0.01"))
SYNTHETIC_SEED = int(os.getenv("CLINICAL_SCORING_SYNTHETIC_SEED", "42"))
SYNTHETIC_SIZE = int(os.getenv("CLINICAL_SCORING_SYNTHETIC_SIZE", "220"))
