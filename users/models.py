# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    ROLE_MEMBER = 'member'
    ROLE_ADMIN = 'admin'

    ROLE_CHOICES = (
        (ROLE_MEMBER, 'Member'),
        (ROLE_ADMIN, 'Admin'),
    )

    role = models.CharField(
        max_length=30,
        choices=ROLE_CHOICES,
        default=ROLE_MEMBER
    )

    phone = models.CharField(max_length=20, blank=True, null=True)

    # Staff accounts act on behalf of exactly one organization
    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.SET_NULL,
        related_name='members',
        null=True,
        blank=True,
    )

    def __str__(self):
        return self.username
