"""
Input validation for account forms.

Each validate_* function returns a tuple of (is_valid, error_message) and
never raises. The require_* helpers run a group of checks and raise
ValidationError for the first one that fails, so nothing invalid is ever
sent to the server.
"""

from musics_client.core.exceptions import ValidationError


MIN_FULL_NAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6


def validate_full_name(full_name: str) -> tuple[bool, str | None]:
    """
    Validate a registration full name.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not full_name or len(full_name.strip()) < MIN_FULL_NAME_LENGTH:
        return False, f"Full Name must be at least {MIN_FULL_NAME_LENGTH} characters"
    return True, None


def validate_email(email: str) -> tuple[bool, str | None]:
    """
    Validate an email address.

    Only the presence of "@" is checked; the server owns the real rules.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not email.strip():
        return False, "Email is required"
    if "@" not in email:
        return False, "Please enter a valid email address"
    return True, None


def validate_password(password: str) -> tuple[bool, str | None]:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return True, None


def validate_password_confirmation(
    password: str,
    confirm_password: str | None
) -> tuple[bool, str | None]:
    """A None confirmation means the caller did not ask for one."""
    if confirm_password is not None and password != confirm_password:
        return False, "Passwords don't match"
    return True, None


def _raise_first(checks: list[tuple[str, tuple[bool, str | None]]]) -> None:
    for field, (is_valid, error_message) in checks:
        if not is_valid:
            raise ValidationError(error_message or "Invalid input", field=field)


def require_login_input(email: str, password: str) -> None:
    """
    Raises:
        ValidationError: Email or password missing.
    """
    if not email or not email.strip():
        raise ValidationError("Email is required", field="email")
    if not password:
        raise ValidationError("Password is required", field="password")


def require_registration_input(
    full_name: str,
    email: str,
    password: str,
    confirm_password: str | None = None
) -> None:
    """
    Check every registration rule in form order.

    Raises:
        ValidationError: For the first failing field.
    """
    _raise_first([
        ("full_name", validate_full_name(full_name)),
        ("email", validate_email(email)),
        ("password", validate_password(password)),
        ("confirm_password", validate_password_confirmation(password, confirm_password)),
    ])
