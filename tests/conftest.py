from __future__ import annotations

import os

# Tests never talk to a real org.
for _name in [name for name in os.environ if name.startswith("BULKFLOW_")]:
    os.environ.pop(_name)

os.environ.setdefault("SF_AUTOUPDATE_DISABLE", "true")
