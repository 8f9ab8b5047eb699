# Initial schema for staff profiles and the audit trail

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StaffProfile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier (UUID)', primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False, help_text='Timestamp when record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when record was last updated', verbose_name='Updated At')),
                ('role', models.CharField(choices=[('INTERN', 'Intern'), ('JOURNALIST', 'Journalist'), ('SUB_EDITOR', 'Sub-Editor'), ('EDITOR', 'Editor'), ('ADMIN', 'Administrator'), ('SUPERADMIN', 'Super Administrator')], db_index=True, default='INTERN', help_text='Staff role determining workflow permissions', max_length=20, verbose_name='Role')),
                ('user', models.OneToOneField(help_text='The associated Django user account', on_delete=django.db.models.deletion.CASCADE, related_name='staff_profile', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Staff Profile',
                'verbose_name_plural': 'Staff Profiles',
                'db_table': 'staff_profiles',
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(db_index=True, help_text='Action name, e.g. APPROVE_STORY or AUTO_PUBLISH_TRANSLATION', max_length=64, verbose_name='Action')),
                ('target_type', models.CharField(blank=True, max_length=32, verbose_name='Target Type')),
                ('target_id', models.CharField(blank=True, db_index=True, max_length=64, verbose_name='Target ID')),
                ('previous_state', models.CharField(blank=True, max_length=32, verbose_name='Previous State')),
                ('new_state', models.CharField(blank=True, max_length=32, verbose_name='New State')),
                ('details', models.JSONField(blank=True, default=dict, verbose_name='Details')),
                ('ip_address', models.CharField(blank=True, max_length=64, verbose_name='IP Address')),
                ('user_agent', models.TextField(blank=True, verbose_name='User Agent')),
                ('request_id', models.CharField(blank=True, max_length=64, verbose_name='Request ID')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL, verbose_name='Actor')),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'db_table': 'audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['target_type', 'target_id'], name='audit_target_idx'),
                    models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
                ],
            },
        ),
    ]
