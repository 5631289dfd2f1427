"""Allow ``python -m knowledge_rag_mcp``."""

import sys

from .cli import main

sys.exit(main())
