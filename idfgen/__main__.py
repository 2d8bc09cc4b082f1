import sys

from idfgen.cli import main

sys.exit(main())
