"""Taker Desktop: native shell for the local trading daemon (pywebview).

Slim entry point. All logic is in the taker_desktop package.
"""

import sys

from taker_desktop.app import main

if __name__ == "__main__":
    sys.exit(main())
