from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
import uuid


class UserManager(BaseUserManager):
    """Custom user manager for phone-based authentication."""

    def create_user(self, phone, password=None, **extra_fields):
        if not phone:
            raise ValueError('Phone number is required')

        phone = self.normalize_phone(phone)
        user = self.model(phone=phone, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, phone, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True')

        return self.create_user(phone, password, **extra_fields)

    @staticmethod
    def normalize_phone(phone):
        """Strip spaces and dashes, keep a leading '+'."""
        phone = phone.strip()
        prefix = '+' if phone.startswith('+') else ''
        return prefix + ''.join(ch for ch in phone if ch.isdigit())


class User(AbstractBaseUser, PermissionsMixin):
    """Storefront customer, identified by phone number."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phone = models.CharField(unique=True, max_length=20, db_index=True)
    display_name = models.CharField(max_length=100, blank=True)
    email = models.EmailField(max_length=255, blank=True)

    # Permissions
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    last_login = models.DateTimeField(null=True, blank=True)

    objects = UserManager()

    USERNAME_FIELD = 'phone'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['created_at'], name='users_created_idx'),
        ]

    def __str__(self):
        return self.phone

    @property
    def customer_id(self):
        """Identifier used in group and reward snapshots."""
        return str(self.id)

    def get_display_name(self):
        """Return display name or the phone number."""
        return self.display_name or self.phone
