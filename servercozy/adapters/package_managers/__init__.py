"""
Package-manager adapters.

    from servercozy.adapters.package_managers import build_default_registry
"""

from servercozy.adapters.package_managers.base import (  # noqa: F401
    InstallResult,
    PackageManagerAdapter,
)
from servercozy.adapters.package_managers.registry import (  # noqa: F401
    PackageManagerRegistry,
    build_default_registry,
)
