"""
Main executable for skysolve. You can execute the code from the terminal like:

.. codeblock:: bash
    python -m skysolve -args...
"""
import sys

from skysolve.cli import main

sys.exit(main())
