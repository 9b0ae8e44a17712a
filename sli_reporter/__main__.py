import sys

from sli_reporter.cli import main

sys.exit(main())
