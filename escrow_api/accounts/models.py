from django.db import models
from django.db.models import F
from django.contrib.auth.models import AbstractUser, BaseUserManager, UserManager
from country_list import countries_for_language
from auditlog.registry import auditlog
from auditlog.models import AuditlogHistoryField


class CustomUserManager(BaseUserManager):
    """
    Manager for CustomUser. Handles user and superuser creation using email as the unique identifier.
    """
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("Email is required.")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        return self.create_user(email, password, **extra_fields)


class ActiveUserManager(UserManager):
    """
    Manager for active users only (is_active=True, deleted_at=None).
    """
    def get_queryset(self):
        return super().get_queryset().filter(is_active=True, deleted_at__isnull=True)


class CustomUser(AbstractUser):
    """
    Platform participant.

    Uses email as the unique identifier. ``wallet_address`` is the settlement
    account that receives payouts and refunds; a participant without one
    cannot take part in an escrow. The escrow counters are bumped by the
    escrow state machine each time the user enters an agreement.
    """
    USER_TYPE_CHOICES = (
        ('freelancer', 'Freelancer'),
        ('client', 'Client'),
    )

    user_type = models.CharField(max_length=20, choices=USER_TYPE_CHOICES, blank=True)
    phone_number = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=50, choices=countries_for_language('en'), blank=True)
    wallet_address = models.CharField(max_length=128, blank=True, db_index=True)
    escrows_as_client = models.PositiveIntegerField(default=0)
    escrows_as_freelancer = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    email = models.EmailField(unique=True, blank=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    username = None

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['first_name', 'last_name',]

    objects = CustomUserManager()
    active_objects = ActiveUserManager()

    history = AuditlogHistoryField()

    def __str__(self):
        return self.email

    def bump_escrow_counter(self, role):
        field = 'escrows_as_client' if role == 'client' else 'escrows_as_freelancer'
        type(self).objects.filter(pk=self.pk).update(**{field: F(field) + 1})
        self.refresh_from_db(fields=[field])


auditlog.register(CustomUser, exclude_fields=['password', 'last_login'])
