"""Allow ``python -m classweaver``."""

import sys

from classweaver.cli import main

sys.exit(main())
