import sys

from attach.app import main

sys.exit(main())
