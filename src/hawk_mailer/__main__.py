# =============================================================================
# Hawk-Mailer Entry Point for `python -m hawk_mailer`
# =============================================================================
# This module allows Hawk-Mailer to be run as a Python module:
#
#   python -m hawk_mailer send --from me@example.com --to you@example.org ...
#
# This is equivalent to running the 'hawk-mailer' command after installation.
# =============================================================================

import sys

from hawk_mailer.app import main

if __name__ == "__main__":
    sys.exit(main())
