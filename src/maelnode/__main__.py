import sys

from maelnode.cli import main

sys.exit(main())
