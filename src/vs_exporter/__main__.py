import sys

from vs_exporter.cli import main

sys.exit(main())
