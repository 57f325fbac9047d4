"""Log in to PlayFab and manage the remembered login from the command line.

Usage: uv run python bin/playfab-auth.py login silent
       uv run python bin/playfab-auth.py --help

Requires PLAYFAB_TITLE_ID in the environment.
"""

import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from playfab_auth.cli import main

if __name__ == "__main__":
    sys.exit(main())
