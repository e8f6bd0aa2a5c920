"""Allow running as ``python -m artifact_sweep``."""

import sys

from .main import main

sys.exit(main())
