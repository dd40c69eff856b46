import sys

from protocinstall.cli import main

sys.exit(main())
