import sys

from gitcircles.cli.main import main

sys.exit(main())
