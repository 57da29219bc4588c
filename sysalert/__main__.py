import sys

from sysalert.main import main

sys.exit(main())
