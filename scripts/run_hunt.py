"""Run the job hunter from a checkout without installing the package.

Example:
    python scripts/run_hunt.py hunt --profile profile.json --query "backend engineer" --dry-run
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from agents.hunter.cli import main

if __name__ == "__main__":
    sys.exit(main())
