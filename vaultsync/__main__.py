"""Allow ``python -m vaultsync``."""

from .app import main

raise SystemExit(main())
