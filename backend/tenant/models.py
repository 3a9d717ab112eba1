import uuid
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models


class Tenant(models.Model):
    """
    Root entity for multi-tenancy.
    Each restaurant is a tenant; every order, ticket and notification row
    belongs to exactly one.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=255,
        help_text="Display name for the tenant (e.g., Joe's Pizza)"
    )
    slug = models.SlugField(
        unique=True,
        help_text="URL-safe identifier sent by the gateway in the X-Tenant header"
    )

    # Status
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive tenants cannot access the system"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tenants'
        ordering = ['name']
        indexes = [
            models.Index(fields=['slug'], name='tenants_slug_2f8e8e_idx'),
            models.Index(fields=['is_active'], name='tenants_is_acti_0c7b7a_idx'),
        ]

    def __str__(self):
        return self.name

    @classmethod
    def resolve(cls, tenant_id):
        """
        Look up an active tenant by id for service-to-service traffic.

        Raises:
            ValidationError: tenant_id missing
            NotFoundError: no tenant with that id (or id is not a UUID)
            UnauthorizedError: tenant exists but is inactive
        """
        from core_backend.exceptions import NotFoundError, UnauthorizedError, ValidationError

        if not tenant_id:
            raise ValidationError("tenantId is required")
        try:
            tenant = cls.objects.get(id=tenant_id)
        except (cls.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError('Tenant', tenant_id)
        if not tenant.is_active:
            raise UnauthorizedError(f"Tenant {tenant.slug} is inactive")
        return tenant
