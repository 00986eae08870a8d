import sys

from tagchain.cli import main

sys.exit(main())
