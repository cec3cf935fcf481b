import sys

from rvman.main import main

sys.exit(main())
