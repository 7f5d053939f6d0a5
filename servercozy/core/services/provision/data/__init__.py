"""
L0 Data — ``__init__.py`` re-exports all data constants.
"""

from servercozy.core.services.provision.data.special_cases import (  # noqa: F401
    SPECIAL_CASE_CHAINS,
    USER_LEVEL_METHODS,
    USER_TOOLCHAINS,
    UserMethod,
)
from servercozy.core.services.provision.data.tools import (  # noqa: F401
    ADVANCED_TOOLS,
    ALL_TOOLS,
    ESSENTIAL_TOOLS,
    RECOMMENDED_TOOLS,
    TIER_TITLES,
    TOOL_TIERS,
)
