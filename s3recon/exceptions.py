# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3Recon Exceptions - Custom exceptions for the s3recon package.
"""


class ReconError(Exception):
    """Base exception for all s3recon errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ReconError):
    """Raised when configuration is invalid."""

    pass


class UploadRejectedError(ReconError):
    """Raised when an upload has no file part or exceeds the size limit."""

    pass


class OperationAbortedError(ReconError):
    """Raised when a backup or restore cannot enumerate the object store."""

    pass


class ObjectStoreError(ReconError):
    """Raised when object store operations fail."""

    pass


class ChecksumMismatchError(ReconError):
    """Raised when snapshot content no longer matches its recorded digest."""

    pass


class MetricsError(ReconError):
    """Raised for unknown metric names or out-of-vocabulary label values."""

    pass
