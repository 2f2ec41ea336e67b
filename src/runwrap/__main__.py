import sys

from runwrap.cli import main

sys.exit(main())
