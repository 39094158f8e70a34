import sys

from jetson_setup.cli_handler import main

sys.exit(main())
