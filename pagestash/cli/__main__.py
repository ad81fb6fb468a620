"""Allow ``python -m pagestash.cli`` execution."""

import sys

from pagestash.cli.bulk_import import main

sys.exit(main())
