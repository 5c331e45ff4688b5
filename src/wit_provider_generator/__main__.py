import sys

from wit_provider_generator.cli import main

sys.exit(main())
