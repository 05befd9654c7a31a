import sys

from mqa_identifier.services.health import run_diagnostics

if __name__ == "__main__":
    sys.exit(0 if run_diagnostics() else 1)
