import sys

from bdpi_tester.main import main

sys.exit(main())
