# users/management/commands/seed_users.py

from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from permissions.roles import ROLE_ADMIN, ROLE_OPERATOR, ROLE_SUPERVISOR


@dataclass(frozen=True)
class SeedUserSpec:
    label: str
    role: str
    email: str
    first_name: str = ""
    last_name: str = ""


SEED_USERS = [
    SeedUserSpec("Admin", ROLE_ADMIN, "admin@example.com", "System", "Admin"),
    SeedUserSpec(
        "Supervisor", ROLE_SUPERVISOR, "supervisor@example.com", "Camp", "Supervisor"
    ),
    SeedUserSpec("Operator", ROLE_OPERATOR, "operator@example.com", "Store", "Keeper"),
]


class Command(BaseCommand):
    help = "Seed one user per staff role (operator, supervisor, admin)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            type=str,
            default="Pass1234!",
            help="Password for seeded users (default: Pass1234!)",
        )
        parser.add_argument(
            "--force-password",
            action="store_true",
            help="Reset password for existing seeded users too.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        password = options.get("password") or ""
        force_password = bool(options.get("force_password"))

        if len(password) < 6:
            raise CommandError("--password must be at least 6 characters.")

        User = get_user_model()

        created_count = 0
        updated_count = 0

        for spec in SEED_USERS:
            is_admin = spec.role == ROLE_ADMIN

            user = User.objects.filter(email=spec.email).first()
            if user is None:
                User.objects.create_user(
                    email=spec.email,
                    password=password,
                    role=spec.role,
                    first_name=spec.first_name,
                    last_name=spec.last_name,
                    is_staff=True,
                    is_superuser=is_admin,
                )
                created_count += 1
                self.stdout.write(f"created: {spec.label} ({spec.role}) -> {spec.email}")
                continue

            dirty = False
            if user.role != spec.role:
                user.role = spec.role
                dirty = True
            if user.is_superuser != is_admin:
                user.is_superuser = is_admin
                dirty = True
            if force_password:
                user.set_password(password)
                dirty = True

            if dirty:
                user.save()
                updated_count += 1

            self.stdout.write(f"exists:  {spec.label} ({spec.role}) -> {spec.email}")

        self.stdout.write("\n--- Summary ---")
        self.stdout.write(f"Created: {created_count}")
        self.stdout.write(f"Updated: {updated_count}")
