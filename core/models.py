#  etiket-backend/core/models.py
from django.db import models
from django.db.models import Q


class Organization(models.Model):
    """
    A tenant. Owns events, staff users and its own configuration rows.
    """
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)

    # Legacy per-organization WhatsApp switch, predates notification
    # preferences. NULL = never set, False = switched off.
    waha_enabled = models.BooleanField(null=True, blank=True, default=None)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Setting(models.Model):
    """
    Key/value configuration row.

    organization=NULL is the system (global) scope; the same key may exist
    at both scopes. Values are plain strings or JSON, parsed by
    core.settings_store.
    """
    key = models.CharField(max_length=100)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="settings",
        null=True,
        blank=True,
    )
    value = models.TextField(blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["key", "organization"],
                name="setting_key_org_unique",
            ),
            models.UniqueConstraint(
                fields=["key"],
                condition=Q(organization__isnull=True),
                name="setting_key_system_unique",
            ),
        ]
        indexes = [
            models.Index(fields=["organization", "key"], name="setting_org_key_idx"),
        ]

    @property
    def is_system(self):
        return self.organization_id is None

    def __str__(self):
        scope = "system" if self.is_system else self.organization_id
        return f"{self.key} @ {scope}"
