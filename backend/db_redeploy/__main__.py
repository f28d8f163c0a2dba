import sys

from db_redeploy.cli import main

sys.exit(main())
