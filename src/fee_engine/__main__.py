"""Allow running as python -m fee_engine."""

import sys

from fee_engine.main import main

sys.exit(main())
