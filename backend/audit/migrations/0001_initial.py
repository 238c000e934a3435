import audit.models
import django.core.serializers.json
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('assets', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLogEntry',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('CREATE', 'Create'), ('UPDATE', 'Update'), ('DELETE', 'Delete'), ('APPROVE', 'Approve'), ('REJECT', 'Reject'), ('DOWNLOAD', 'Download'), ('UPLOAD', 'Upload'), ('SHARE', 'Share'), ('VIEW', 'View')], max_length=16)),
                ('resource_type', models.CharField(choices=[('USER', 'User'), ('COMPANY', 'Company'), ('ASSET', 'Asset'), ('APPROVAL', 'Approval')], max_length=16)),
                ('resource_id', models.CharField(blank=True, max_length=64, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, default='', max_length=512)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(blank=True, null=True, on_delete=audit.models.SET_NULL_REFERENCE, related_name='audit_log_entries', to='assets.asset')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='audit_log_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_log_entry',
                'ordering': ('-created_at', '-id'),
                'indexes': [
                    models.Index(fields=['user', '-created_at'], name='audit_user_recent_idx'),
                    models.Index(fields=['action', '-created_at'], name='audit_action_recent_idx'),
                    models.Index(fields=['resource_type', 'resource_id'], name='audit_resource_idx'),
                ],
            },
        ),
    ]
