import sys

from .libs.cli_interface import main

sys.exit(main())
