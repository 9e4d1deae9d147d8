from __future__ import annotations

import os
import sys

# Allow running without installing the package (repo-local usage).
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_ROOT = os.path.join(REPO_ROOT, "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from arinails_tryon.app import main  # noqa: E402


if __name__ == "__main__":
    raise SystemExit(main())
