"""Allow ``python -m dashboard_carousel`` to launch the carousel server."""

from __future__ import annotations

import sys


def main() -> None:
    from dashboard_carousel import run

    sys.exit(run(sys.argv[1:]))


if __name__ == "__main__":
    main()
