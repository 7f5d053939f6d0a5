"""
L3 Detection — ``__init__.py`` re-exports the read-only probes.
"""

from servercozy.core.services.provision.detection.network import (  # noqa: F401
    check_connectivity,
    check_for_updates,
)
from servercozy.core.services.provision.detection.platform import (  # noqa: F401
    PlatformDetector,
)
from servercozy.core.services.provision.detection.privilege import (  # noqa: F401
    PrivilegeResolver,
)
