import sys

from backend_insights.runtime import main

sys.exit(main())
