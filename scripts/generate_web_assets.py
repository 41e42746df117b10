#!/usr/bin/env python3

"""Generate the embedded web assets source for firmware builds.

Same as the ``webembed`` console script; needs the package installed
(``pip install -e .``).
"""

from webembed.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
