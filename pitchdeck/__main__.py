"""python -m pitchdeck"""

import sys

from pitchdeck.cli import main

sys.exit(main())
