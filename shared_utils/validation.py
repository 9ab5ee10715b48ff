"""
Input validation and sanitization utilities.
Every value that ends up inside a storage key or a local path passes through here.
"""

from typing import List
import re

from shared_utils.error_handler import ValidationError


_SEGMENT_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_non_empty_string(value: str, field_name: str) -> str:
        """Validate non-empty string.

        Args:
            value: String to validate
            field_name: Name of field for error messages

        Returns:
            Stripped string

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if not value or not value.strip():
            raise ValidationError(f"{field_name} cannot be empty", context={"field": field_name})

        return value.strip()

    @staticmethod
    def validate_key_segment(value: str, field_name: str, max_length: int = 128) -> str:
        """Validate an identifier used as one segment of a storage key.

        Only letters, digits, ``.``, ``_`` and ``-`` are accepted, and the
        value may not start with a dot, so it can never traverse out of
        its parent directory.

        Raises:
            ValidationError: If the identifier is empty or unsafe
        """
        value = InputValidator.validate_non_empty_string(value, field_name)

        if len(value) > max_length:
            raise ValidationError(
                f"{field_name} too long (max {max_length} characters)",
                context={"field": field_name},
            )
        if not _SEGMENT_PATTERN.match(value):
            raise ValidationError(
                f"{field_name} contains invalid characters",
                context={"field": field_name},
            )
        return value

    @staticmethod
    def validate_file_extension(filename: str, allowed_extensions: List[str]) -> str:
        """Validate file extension.

        Args:
            filename: Filename to validate
            allowed_extensions: List of allowed extensions (without dots).
                An empty list accepts any extension.

        Returns:
            Validated filename

        Raises:
            ValidationError: If validation fails
        """
        if not allowed_extensions:
            return filename

        if '.' not in filename:
            raise ValidationError("File must have an extension")

        ext = filename.rsplit('.', 1)[1].lower()
        if ext not in [e.lower() for e in allowed_extensions]:
            raise ValidationError(f"File extension .{ext} not allowed. Allowed: {allowed_extensions}")

        return filename

    @staticmethod
    def sanitize_filename(filename: str, max_length: int = 255) -> str:
        """Sanitize filename to prevent path traversal and other issues.

        Args:
            filename: Filename to sanitize
            max_length: Maximum filename length

        Returns:
            Sanitized filename

        Raises:
            ValidationError: If validation fails
        """
        # Browsers may send a full client-side path; keep the basename only
        filename = filename.replace('\\', '/').rsplit('/', 1)[-1]
        filename = re.sub(r'[<>:"|?*\x00-\x1f]', '', filename).strip()

        if not filename:
            raise ValidationError("Filename cannot be empty")

        # Prevent path traversal
        if '..' in filename or filename.startswith('.'):
            raise ValidationError("Invalid filename format")

        if len(filename) > max_length:
            raise ValidationError(f"Filename too long (max {max_length} characters)")

        return filename
