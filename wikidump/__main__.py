import sys

from wikidump.cli import main

sys.exit(main())
