"""
L4 Execution — ``__init__.py`` re-exports the pieces that change the system.
"""

from servercozy.core.services.provision.execution.dotfiles import (  # noqa: F401
    DotfileWriter,
    detect_shell_kind,
)
from servercozy.core.services.provision.execution.installer import (  # noqa: F401
    PackageInstaller,
)
from servercozy.core.services.provision.execution.special_cases import (  # noqa: F401
    SpecialCaseResolver,
)
from servercozy.core.services.provision.execution.subprocess_runner import (  # noqa: F401
    run_command,
)
