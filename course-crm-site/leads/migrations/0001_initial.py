from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


STATUS_CHOICES = [('lead', 'Lead'), ('onboarding', 'Onboarding'), ('sale', 'Sale'), ('rejected', 'Rejected')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Lead',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('email', models.EmailField(max_length=254)),
                ('country_code', models.CharField(blank=True, max_length=6)),
                ('phone', models.CharField(max_length=40)),
                ('role', models.CharField(blank=True, max_length=120)),
                ('level', models.CharField(blank=True, max_length=120)),
                ('software', models.CharField(blank=True, max_length=120)),
                ('clients', models.CharField(blank=True, max_length=120)),
                ('investment', models.CharField(blank=True, max_length=120)),
                ('why', models.TextField(blank=True)),
                ('status', models.CharField(choices=STATUS_CHOICES, default='lead', max_length=12)),
                ('notes', models.TextField(blank=True)),
                ('agent_data', models.JSONField(blank=True, default=dict)),
                ('is_deleted', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_leads', to=settings.AUTH_USER_MODEL)),
                ('deleted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deleted_leads', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['status'], name='lead_status_idx'),
                    models.Index(fields=['is_deleted'], name='lead_deleted_idx'),
                    models.Index(fields=['created_at'], name='lead_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LeadStatusHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('previous_status', models.CharField(choices=STATUS_CHOICES, max_length=12)),
                ('new_status', models.CharField(choices=STATUS_CHOICES, max_length=12)),
                ('details', models.CharField(blank=True, max_length=500)),
                ('performed_at', models.DateTimeField()),
                ('lead', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='leads.lead')),
                ('performed_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='lead_status_changes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'lead status history',
                'ordering': ['performed_at', 'id'],
            },
        ),
    ]
