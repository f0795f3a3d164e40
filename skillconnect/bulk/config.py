"""Bulk operation settings sourced from environment variables."""

import os
from typing import List

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class BulkOperationsConfig:
    """Configuration for the bulk engine from environment variables."""

    def __init__(self):
        self.upload_dir = os.getenv('BULK_UPLOAD_DIR', 'uploads')
        self.export_dir = os.getenv('BULK_EXPORT_DIR', self.upload_dir)
        self.max_upload_bytes = int(os.getenv('BULK_MAX_UPLOAD_BYTES', str(DEFAULT_MAX_UPLOAD_BYTES)))
        self.email_max_attempts = max(1, int(os.getenv('BULK_EMAIL_MAX_ATTEMPTS', '1')))
        self.import_default_password = os.getenv('BULK_IMPORT_DEFAULT_PASSWORD', 'DefaultPassword123!')

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.upload_dir:
            errors.append("BULK_UPLOAD_DIR is required")
        if not self.export_dir:
            errors.append("BULK_EXPORT_DIR is required")
        if self.max_upload_bytes <= 0:
            errors.append("BULK_MAX_UPLOAD_BYTES must be a positive integer")
        if len(self.import_default_password) < 6:
            errors.append("BULK_IMPORT_DEFAULT_PASSWORD must be at least 6 characters")
        return errors
