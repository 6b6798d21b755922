"""Password complexity validator, plugged into ``AUTH_PASSWORD_VALIDATORS``."""

from __future__ import annotations

from django.core.exceptions import ValidationError

_RULES = (
    (str.isupper, "password_no_upper", "at least one uppercase letter"),
    (str.islower, "password_no_lower", "at least one lowercase letter"),
    (str.isdigit, "password_no_digit", "at least one number"),
    (
        lambda char: not char.isalnum() and not char.isspace(),
        "password_no_symbol",
        "at least one special character",
    ),
)


class PasswordComplexityValidator:
    """Require mixed case, a digit and a symbol; reports every missing class."""

    def validate(self, password: str, user=None) -> None:
        errors = [
            ValidationError(f"Password must contain {label}.", code=code)
            for predicate, code, label in _RULES
            if not any(predicate(char) for char in password)
        ]
        if errors:
            raise ValidationError(errors)

    def get_help_text(self) -> str:
        return (
            "Your password must contain an uppercase letter, a lowercase "
            "letter, a number and a special character."
        )
