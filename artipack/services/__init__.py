"""Application services: validation, downloads, packaging and deployment checks."""

from .deploy import CheckResult, CheckStatus, DeployReport, check_package
from .download import CANCELLED_MESSAGE, DownloadReport, DownloadService
from .entrypoint import EntryPointGenerator, EntryPointSpec
from .package import OfflinePackage, OfflinePackager, PackagingError
from .validate import ValidationReport, ValidationResult, Validator

__all__ = [
    "CANCELLED_MESSAGE",
    "CheckResult",
    "CheckStatus",
    "DeployReport",
    "DownloadReport",
    "DownloadService",
    "EntryPointGenerator",
    "EntryPointSpec",
    "OfflinePackage",
    "OfflinePackager",
    "PackagingError",
    "ValidationReport",
    "ValidationResult",
    "Validator",
    "check_package",
]
