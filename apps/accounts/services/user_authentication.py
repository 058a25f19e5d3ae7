"""Phone and password login for storefront customers."""

import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.models import update_last_login

from .exceptions import InvalidCredentialsError, InactiveAccountError

logger = logging.getLogger(__name__)

User = get_user_model()

LOGIN_FAILED_MESSAGE = "Invalid phone number or password"


def _masked(phone):
    return f"***{phone[-4:]}" if len(phone) > 4 else "***"


def _find_customer(phone, password):
    try:
        return User.objects.get(phone=phone)
    except User.DoesNotExist:
        # Hash anyway so unknown numbers take as long as wrong passwords
        User().set_password(password)
        return None


def authenticate_user(*, phone: str, password: str) -> User:
    """
    Log a customer in by phone number and password.

    The phone is normalised the same way as at registration, so
    ``+420 601-000-001`` matches ``+420601000001``. A successful login
    stamps ``last_login``.

    Raises:
        InvalidCredentialsError: unknown phone or wrong password
        InactiveAccountError: the account has been deactivated
    """
    phone = User.objects.normalize_phone(phone)
    customer = _find_customer(phone, password)

    if customer is None or not customer.check_password(password):
        logger.warning("Failed login for %s", _masked(phone))
        raise InvalidCredentialsError(LOGIN_FAILED_MESSAGE)

    if not customer.is_active:
        logger.info("Login refused for deactivated customer %s", customer.customer_id)
        raise InactiveAccountError("Account is deactivated")

    update_last_login(None, customer)
    return customer
