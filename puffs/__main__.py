"""Allow ``python -m puffs``."""

from .main import main

raise SystemExit(main())
