import sys

from gourmand.cli import main

sys.exit(main())
