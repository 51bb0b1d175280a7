import os
import sys


# Tests import `stockdesk.*` as namespace packages; pytest may be launched from
# the repo root or from inside `stockdesk/`.
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)
