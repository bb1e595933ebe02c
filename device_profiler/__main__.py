"""Allow ``python -m device_profiler`` to launch the demo session."""

from __future__ import annotations

import sys


def main() -> None:
    from device_profiler import run
    raise SystemExit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
