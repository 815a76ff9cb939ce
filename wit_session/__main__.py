"""Package entry point for ``python -m wit_session``.

WHY: Lets users run the CLI without installing the console script.

HOW: Delegates to the CLI's main() function.
"""

import sys

from wit_session.cli import main

if __name__ == "__main__":
    sys.exit(main())
