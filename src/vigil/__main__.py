"""Allow ``python -m vigil``."""

import sys

from .cli import main

sys.exit(main())
