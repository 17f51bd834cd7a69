import sys

from z21scan.cli import main

sys.exit(main())
