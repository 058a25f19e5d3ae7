"""Customer registration service."""

import logging

from django.db import transaction, IntegrityError
from django.contrib.auth import get_user_model

from .exceptions import UserRegistrationError

User = get_user_model()
logger = logging.getLogger(__name__)


@transaction.atomic
def register_user(
    *,
    phone: str,
    password: str,
    display_name: str = ""
) -> User:
    """
    Register a new customer.

    Args:
        phone: Customer's phone number (login identifier)
        password: Customer's password (will be hashed)
        display_name: Optional display name

    Returns:
        Created User instance

    Raises:
        UserRegistrationError: If the phone number is already registered
    """
    phone = User.objects.normalize_phone(phone)
    if User.objects.filter(phone=phone).exists():
        raise UserRegistrationError("A customer with this phone number already exists")

    try:
        user = User.objects.create_user(
            phone=phone,
            password=password,
            display_name=display_name
        )
    except IntegrityError:
        raise UserRegistrationError("A customer with this phone number already exists")

    logger.info("Registered customer %s", user.id)
    return user
