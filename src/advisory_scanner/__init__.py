"""advisory_scanner package: app/core/infra/shared.

Expose library-friendly scanner client at the package level.
"""

from .app.api import AdvisoryScanner, ScannerSettings
from .core.domain.enums import AdvisoryLevel
from .core.domain.errors import SourceAuthorizationError, SourceError
from .core.domain.models import Advisory, Package

import logging

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

__all__ = [
    "AdvisoryScanner",
    "ScannerSettings",
    "Advisory",
    "AdvisoryLevel",
    "Package",
    "SourceError",
    "SourceAuthorizationError",
]
