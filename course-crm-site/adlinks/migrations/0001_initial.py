from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AdLink',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('slug', models.CharField(max_length=50, unique=True)),
                ('description', models.TextField(blank=True)),
                ('target_url', models.CharField(max_length=1000)),
                ('link_type', models.CharField(choices=[('course', 'Course'), ('landing_page', 'Landing page'), ('external', 'External'), ('resource', 'Resource')], default='landing_page', max_length=20)),
                ('default_role', models.CharField(blank=True, max_length=50)),
                ('target_course', models.CharField(blank=True, max_length=200)),
                ('campaign_name', models.CharField(blank=True, max_length=200)),
                ('utm_source', models.CharField(blank=True, max_length=100)),
                ('utm_medium', models.CharField(blank=True, max_length=100)),
                ('utm_campaign', models.CharField(blank=True, max_length=100)),
                ('utm_term', models.CharField(blank=True, max_length=100)),
                ('utm_content', models.CharField(blank=True, max_length=100)),
                ('expiration_date', models.DateTimeField(blank=True, null=True)),
                ('require_approval', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
                ('total_clicks', models.PositiveIntegerField(default=0)),
                ('unique_clicks', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ad_links', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['is_active'], name='adlink_active_idx'),
                    models.Index(fields=['campaign_name'], name='adlink_campaign_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ClickEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('ip', models.CharField(max_length=64)),
                ('user_agent', models.TextField(blank=True)),
                ('referrer', models.TextField(blank=True)),
                ('country', models.CharField(blank=True, max_length=100)),
                ('region', models.CharField(blank=True, max_length=100)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('utm_params', models.JSONField(blank=True, default=dict)),
                ('session_id', models.CharField(max_length=64)),
                ('is_unique', models.BooleanField(default=True)),
                ('link', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='clicks', to='adlinks.adlink')),
            ],
            options={
                'ordering': ['-timestamp', '-id'],
                'indexes': [
                    models.Index(fields=['link', 'timestamp'], name='click_link_time_idx'),
                ],
            },
        ),
    ]
