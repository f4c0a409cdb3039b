import sys

from logingest.cli import main

sys.exit(main())
