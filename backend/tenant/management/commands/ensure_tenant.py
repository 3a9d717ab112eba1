"""
Management command to ensure a tenant exists.

Idempotent bootstrap run after migrations. Prints the tenant id the
gateway forwards in the X-Tenant-Id header.

Usage:
    python manage.py ensure_tenant
    python manage.py ensure_tenant --slug=pho-24 --name="Pho 24"
"""

from django.conf import settings
from django.core.management.base import BaseCommand

from tenant.models import Tenant


class Command(BaseCommand):
    help = "Ensure a tenant exists (defaults to DEFAULT_TENANT_SLUG)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--slug",
            type=str,
            default=None,
            help="Tenant slug (defaults to DEFAULT_TENANT_SLUG setting)",
        )
        parser.add_argument(
            "--name",
            type=str,
            default="Development",
            help="Tenant display name",
        )

    def handle(self, *args, **options):
        slug = options["slug"] or settings.DEFAULT_TENANT_SLUG

        tenant, created = Tenant.objects.get_or_create(
            slug=slug,
            defaults={"name": options["name"], "is_active": True},
        )

        if created:
            self.stdout.write(self.style.SUCCESS(f"✓ Created tenant: {tenant.slug} ({tenant.id})"))
        else:
            self.stdout.write(self.style.SUCCESS(f"✓ Tenant already exists: {tenant.slug}"))
            if not tenant.is_active:
                self.stdout.write(self.style.WARNING("  Tenant is inactive and will be refused with 403"))

        self.stdout.write(f"  ID: {tenant.id}")
        self.stdout.write(f"  Name: {tenant.name}")
