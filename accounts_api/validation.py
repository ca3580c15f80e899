"""Request field rules and their user-facing messages.

Each ``validate_*`` function returns a flat list of messages ordered by field
and then by rule, empty when the input is acceptable. A missing or blank field
only reports its "required" message.
"""
import re

from email_validator import EmailNotValidError, validate_email

USERNAME_MIN = 3
USERNAME_MAX = 10
PASSWORD_MIN = 6
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*[0-9]).+$", re.DOTALL)

MESSAGES = {
    "username.required": "Please enter a username.",
    "username.min": "Username must be at least {min} characters long.",
    "username.max": "Username must not be more than {max} characters long.",
    "username.unique": "This username is already in use.",
    "email.required": "Please enter an email address.",
    "email.email": "Please enter a valid email address.",
    "email.unique": "This email address is already in use.",
    "password.required": "Please enter a password.",
    "password.min": "Password must be at least {min} characters long.",
    "password.regex": "Password must contain at least one uppercase letter, one lowercase letter, and one number.",
    "token.required": "Please enter a verification token.",
    "code.required": "Please enter a verification code.",
    "user_id.required": "Please enter a user ID.",
}


def message(key: str, **params) -> str:
    return MESSAGES[key].format(**params)


def clean(value):
    if isinstance(value, str):
        value = value.strip()
    return value


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def is_email(value: str) -> bool:
    try:
        # syntax only: special-use domains such as localhost are accepted
        validate_email(value, check_deliverability=False, globally_deliverable=False)
    except EmailNotValidError:
        return False
    return True


def _username_errors(username):
    if is_blank(username):
        return [message("username.required")]
    errors = []
    username = clean(username)
    if len(username) < USERNAME_MIN:
        errors.append(message("username.min", min=USERNAME_MIN))
    if len(username) > USERNAME_MAX:
        errors.append(message("username.max", max=USERNAME_MAX))
    return errors


def _email_errors(email):
    if is_blank(email):
        return [message("email.required")]
    if not is_email(clean(email)):
        return [message("email.email")]
    return []


def _new_password_errors(password):
    if is_blank(password):
        return [message("password.required")]
    errors = []
    if len(password) < PASSWORD_MIN:
        errors.append(message("password.min", min=PASSWORD_MIN))
    if not PASSWORD_PATTERN.match(password):
        errors.append(message("password.regex"))
    return errors


def _required(value, key):
    return [message(key)] if is_blank(value) else []


def validate_signup(username, email, password):
    return _username_errors(username) + _email_errors(email) + _new_password_errors(password)


def validate_verify_email(email, token):
    return _email_errors(email) + _required(token, "token.required")


def validate_login(email, password):
    return _email_errors(email) + _required(password, "password.required")


def validate_forgot_password(email):
    return _email_errors(email)


def validate_reset_password(email, token, password):
    return (
        _email_errors(email)
        + _required(token, "code.required")
        + _new_password_errors(password)
    )


def validate_restore(user_id):
    return _required(user_id, "user_id.required")
