# Initial schema for stories, translations and editorial lookups

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


ROLE_CHOICES = [
    ('INTERN', 'Intern'),
    ('JOURNALIST', 'Journalist'),
    ('SUB_EDITOR', 'Sub-Editor'),
    ('EDITOR', 'Editor'),
    ('ADMIN', 'Administrator'),
    ('SUPERADMIN', 'Super Administrator'),
]

LANGUAGE_CHOICES = [
    ('ENGLISH', 'English'),
    ('AFRIKAANS', 'Afrikaans'),
    ('XHOSA', 'Xhosa'),
    ('ZULU', 'Zulu'),
]


def base_fields():
    return [
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID)', primary_key=True, serialize=False, verbose_name='ID')),
        ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
        ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=base_fields() + [
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('slug', models.SlugField(max_length=120, unique=True, verbose_name='Slug')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
            ],
            options={
                'verbose_name': 'Category',
                'verbose_name_plural': 'Categories',
                'db_table': 'newsroom_categories',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Tag',
            fields=base_fields() + [
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('slug', models.SlugField(max_length=120, unique=True, verbose_name='Slug')),
            ],
            options={
                'db_table': 'newsroom_tags',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Classification',
            fields=base_fields() + [
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('slug', models.SlugField(max_length=120, unique=True, verbose_name='Slug')),
                ('type', models.CharField(choices=[('LANGUAGE', 'Language'), ('RELIGION', 'Religion'), ('LOCALITY', 'Locality'), ('GENERAL', 'General')], db_index=True, help_text='Classification type; LANGUAGE and RELIGION gate approval', max_length=20, verbose_name='Type')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('sort_order', models.IntegerField(default=0, verbose_name='Sort Order')),
            ],
            options={
                'verbose_name': 'Classification',
                'verbose_name_plural': 'Classifications',
                'db_table': 'newsroom_classifications',
                'ordering': ['type', 'sort_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Story',
            fields=base_fields() + [
                ('title', models.CharField(max_length=255, verbose_name='Title')),
                ('slug', models.SlugField(help_text='Derived from the title; translations append the language code', max_length=300, unique=True, verbose_name='Slug')),
                ('content', models.TextField(blank=True, verbose_name='Content')),
                ('author_role', models.CharField(choices=ROLE_CHOICES, help_text="Author's staff role when the story was created", max_length=20, verbose_name='Author Role')),
                ('stage', models.CharField(choices=[('DRAFT', 'Draft'), ('NEEDS_JOURNALIST_REVIEW', 'Needs Journalist Review'), ('NEEDS_SUB_EDITOR_APPROVAL', 'Needs Sub-Editor Approval'), ('NEEDS_REVISION', 'Needs Revision'), ('APPROVED', 'Approved'), ('TRANSLATED', 'Translated'), ('PUBLISHED', 'Published')], db_index=True, default='DRAFT', max_length=32, verbose_name='Stage')),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('IN_REVIEW', 'In Review'), ('NEEDS_REVISION', 'Needs Revision'), ('PENDING_APPROVAL', 'Pending Approval'), ('PENDING_TRANSLATION', 'Pending Translation'), ('APPROVED', 'Approved'), ('READY_TO_PUBLISH', 'Ready to Publish'), ('PUBLISHED', 'Published'), ('ARCHIVED', 'Archived')], default='DRAFT', help_text='Legacy status, kept in step with the stage', max_length=32, verbose_name='Status')),
                ('author_checklist', models.JSONField(blank=True, default=dict)),
                ('reviewer_checklist', models.JSONField(blank=True, default=dict)),
                ('approver_checklist', models.JSONField(blank=True, default=dict)),
                ('translation_checklist', models.JSONField(blank=True, default=dict)),
                ('is_translation', models.BooleanField(db_index=True, default=False, verbose_name='Is Translation')),
                ('language', models.CharField(choices=LANGUAGE_CHOICES, default='ENGLISH', max_length=20, verbose_name='Language')),
                ('published_at', models.DateTimeField(blank=True, null=True, verbose_name='Published At')),
                ('assigned_approver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stories_to_approve', to=settings.AUTH_USER_MODEL, verbose_name='Assigned Approver')),
                ('assigned_reviewer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stories_to_review', to=settings.AUTH_USER_MODEL, verbose_name='Assigned Reviewer')),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='authored_stories', to=settings.AUTH_USER_MODEL, verbose_name='Author')),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stories', to='newsroom.category', verbose_name='Category')),
                ('classifications', models.ManyToManyField(blank=True, related_name='stories', to='newsroom.classification')),
                ('original_story', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='translation_stories', to='newsroom.story', verbose_name='Original Story')),
                ('published_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='published_stories', to=settings.AUTH_USER_MODEL, verbose_name='Published By')),
                ('tags', models.ManyToManyField(blank=True, related_name='stories', to='newsroom.tag')),
            ],
            options={
                'verbose_name': 'Story',
                'verbose_name_plural': 'Stories',
                'db_table': 'newsroom_stories',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['original_story', 'is_translation'], name='story_original_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Translation',
            fields=base_fields() + [
                ('target_language', models.CharField(choices=LANGUAGE_CHOICES, max_length=20, verbose_name='Target Language')),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('IN_PROGRESS', 'In Progress'), ('NEEDS_REVIEW', 'Needs Review'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected'), ('PUBLISHED', 'Published')], db_index=True, default='PENDING', max_length=20, verbose_name='Status')),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('published_at', models.DateTimeField(blank=True, null=True)),
                ('translator_notes', models.TextField(blank=True)),
                ('reviewer_notes', models.TextField(blank=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('assigned_to', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='assigned_translations', to=settings.AUTH_USER_MODEL, verbose_name='Translator')),
                ('original_story', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='translations', to='newsroom.story', verbose_name='Original Story')),
                ('reviewer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reviewed_translations', to=settings.AUTH_USER_MODEL, verbose_name='Reviewer')),
                ('translated_story', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='translation_requests', to='newsroom.story', verbose_name='Translated Story')),
            ],
            options={
                'verbose_name': 'Translation',
                'verbose_name_plural': 'Translations',
                'db_table': 'newsroom_translations',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='RevisionRequest',
            fields=base_fields() + [
                ('requested_by_role', models.CharField(choices=ROLE_CHOICES, max_length=20)),
                ('reason', models.TextField(verbose_name='Reason')),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolved At')),
                ('assigned_to', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='assigned_revisions', to=settings.AUTH_USER_MODEL, verbose_name='Assigned To')),
                ('requested_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='requested_revisions', to=settings.AUTH_USER_MODEL, verbose_name='Requested By')),
                ('story', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='revision_requests', to='newsroom.story', verbose_name='Story')),
            ],
            options={
                'verbose_name': 'Revision Request',
                'verbose_name_plural': 'Revision Requests',
                'db_table': 'newsroom_revision_requests',
                'ordering': ['-created_at'],
            },
        ),
    ]
