import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models

VISIBILITY_CHOICES = [
    ('UPLOADER_ONLY', 'Uploader only'),
    ('ADMIN_ONLY', 'Admin only'),
    ('COMPANY', 'Company'),
    ('TEAM', 'Team'),
    ('ROLE', 'Role'),
    ('SELECTED_USERS', 'Selected users'),
    ('PUBLIC', 'Public'),
]

PLATFORM_CHOICES = [
    ('X', 'X'),
    ('LINKEDIN', 'LinkedIn'),
    ('INSTAGRAM', 'Instagram'),
    ('META_ADS', 'Meta Ads'),
    ('YOUTUBE', 'YouTube'),
    ('ADS', 'Ads'),
    ('META', 'Meta'),
    ('SEO', 'SEO'),
    ('BLOGS', 'Blogs'),
    ('SNAPCHAT', 'Snapchat'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Asset',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('tags', models.JSONField(blank=True, default=list)),
                ('asset_type', models.CharField(choices=[('IMAGE', 'Image'), ('VIDEO', 'Video'), ('DOCUMENT', 'Document'), ('LINK', 'Link'), ('CAROUSEL', 'Carousel')], max_length=16)),
                ('upload_type', models.CharField(choices=[('SEO', 'SEO'), ('DOC', 'Doc')], max_length=8)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('PENDING_REVIEW', 'Pending review'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected')], db_index=True, default='DRAFT', max_length=16)),
                ('visibility', models.CharField(choices=VISIBILITY_CHOICES, db_index=True, default='UPLOADER_ONLY', max_length=16)),
                ('allowed_role', models.CharField(blank=True, max_length=32, null=True)),
                ('storage_url', models.CharField(max_length=1024)),
                ('file_size', models.BigIntegerField(blank=True, null=True)),
                ('mime_type', models.CharField(blank=True, default='', max_length=100)),
                ('target_platforms', models.JSONField(blank=True, default=list)),
                ('campaign_name', models.CharField(blank=True, default='', max_length=255)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('rejected_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True, default='')),
                ('uploaded_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_assets', to=settings.AUTH_USER_MODEL)),
                ('company', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assets', to='accounts.company')),
                ('rejected_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='rejected_assets', to=settings.AUTH_USER_MODEL)),
                ('uploader', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='uploaded_assets', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-uploaded_at',),
                'indexes': [
                    models.Index(fields=['uploader', '-uploaded_at'], name='asset_uploader_recent_idx'),
                    models.Index(fields=['company', 'visibility'], name='asset_company_visibility_idx'),
                    models.Index(fields=['upload_type', 'status'], name='asset_upload_type_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('visibility', 'ROLE'), ('allowed_role__isnull', False)) | models.Q(models.Q(('visibility', 'ROLE'), _negated=True), ('allowed_role__isnull', True)),
                        name='asset_allowed_role_matches_visibility',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='AssetVersion',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('version_number', models.PositiveIntegerField()),
                ('storage_url', models.CharField(max_length=1024)),
                ('file_size', models.BigIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='versions', to='assets.asset')),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='asset_versions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('asset', 'version_number'),
                'constraints': [models.UniqueConstraint(fields=('asset', 'version_number'), name='asset_version_number_unique')],
            },
        ),
        migrations.CreateModel(
            name='AssetShare',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('target_type', models.CharField(choices=[('USER', 'User'), ('TEAM', 'Team')], default='USER', max_length=8)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shares', to='assets.asset')),
                ('shared_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='asset_shares_given', to=settings.AUTH_USER_MODEL)),
                ('shared_with', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='asset_shares_received', to=settings.AUTH_USER_MODEL)),
                ('team', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='asset_shares', to='accounts.team')),
            ],
            options={
                'ordering': ('-created_at',),
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('target_type', 'USER'), ('shared_with__isnull', False), ('team__isnull', True)) | models.Q(('target_type', 'TEAM'), ('shared_with__isnull', True), ('team__isnull', False)),
                        name='asset_share_single_target',
                    ),
                    models.UniqueConstraint(condition=models.Q(('shared_with__isnull', False)), fields=('asset', 'shared_with'), name='asset_share_user_unique'),
                    models.UniqueConstraint(condition=models.Q(('team__isnull', False)), fields=('asset', 'team'), name='asset_share_team_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CarouselItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('storage_url', models.CharField(max_length=1024)),
                ('item_type', models.CharField(choices=[('IMAGE', 'Image'), ('VIDEO', 'Video')], max_length=8)),
                ('file_size', models.BigIntegerField(blank=True, null=True)),
                ('mime_type', models.CharField(blank=True, default='', max_length=100)),
                ('order', models.PositiveIntegerField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='carousel_items', to='assets.asset')),
            ],
            options={
                'ordering': ('asset', 'order'),
                'constraints': [models.UniqueConstraint(fields=('asset', 'order'), name='carousel_item_order_unique')],
            },
        ),
        migrations.CreateModel(
            name='Approval',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('APPROVE', 'Approve'), ('REJECT', 'Reject')], max_length=8)),
                ('reason', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='approvals', to='assets.asset')),
                ('reviewer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reviews', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-created_at',),
            },
        ),
        migrations.CreateModel(
            name='AssetDownload',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('platforms', models.JSONField(blank=True, default=list)),
                ('downloaded_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='downloads', to='assets.asset')),
                ('downloaded_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='asset_downloads', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-downloaded_at',),
            },
        ),
        migrations.CreateModel(
            name='PlatformUsage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('platform', models.CharField(choices=PLATFORM_CHOICES, max_length=16)),
                ('campaign_name', models.CharField(max_length=255)),
                ('post_url', models.URLField(blank=True, default='', max_length=1024)),
                ('used_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='platform_usages', to='assets.asset')),
                ('logged_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='platform_usages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-used_at',),
            },
        ),
    ]
