"""Package entry point for ``python -m speechlab_dubber``.

WHY: Users run the client as ``python -m speechlab_dubber dub URL -t es``
without installing the console script.

HOW: Delegates to the CLI's main() and exits with its return code.
"""

import sys

from speechlab_dubber.cli import main

if __name__ == "__main__":
    sys.exit(main())
