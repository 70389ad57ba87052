import sys

from fusebuild.cli import main

sys.exit(main())
