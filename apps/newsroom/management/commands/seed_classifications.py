"""
Management command that creates the preset story classifications.

Stories need at least one LANGUAGE and one RELIGION classification before
approval; this seeds the standard set. Safe to run repeatedly.

Usage:
    python manage.py seed_classifications
    python manage.py seed_classifications --dry-run
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.newsroom.models import Classification
from apps.newsroom.state_machine import ClassificationType


PRESET_CLASSIFICATIONS = {
    ClassificationType.LANGUAGE: ['English', 'Afrikaans', 'Xhosa'],
    ClassificationType.RELIGION: ['Christian', 'Muslim', 'Neutral'],
}


class Command(BaseCommand):
    help = 'Create the preset LANGUAGE and RELIGION classifications'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List what would be created without writing anything'
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        created = 0

        with transaction.atomic():
            for classification_type, names in PRESET_CLASSIFICATIONS.items():
                for sort_order, name in enumerate(names):
                    slug = f"{classification_type.lower()}-{name.lower()}"
                    if dry_run:
                        exists = Classification.objects.filter(slug=slug).exists()
                        self.stdout.write(f"{'exists' if exists else 'create'}: {classification_type} {name}")
                        continue

                    _, was_created = Classification.objects.get_or_create(
                        slug=slug,
                        defaults={
                            'name': name,
                            'type': classification_type,
                            'sort_order': sort_order,
                        },
                    )
                    if was_created:
                        created += 1

        if not dry_run:
            self.stdout.write(self.style.SUCCESS(f"Created {created} classifications"))
