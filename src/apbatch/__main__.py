import sys

from apbatch.presentation.cli import main

sys.exit(main())
