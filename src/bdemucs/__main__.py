import sys

from bdemucs.batch_process import main

sys.exit(main())
