from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Member',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('discord_id', models.CharField(max_length=64, unique=True)),
                ('username', models.CharField(max_length=150)),
                ('display_name', models.CharField(blank=True, max_length=150)),
                ('avatar_url', models.URLField(blank=True, max_length=500)),
                ('portfolio_url', models.URLField(blank=True, max_length=500)),
                ('social_media_url', models.URLField(blank=True, max_length=500)),
                ('total_points', models.PositiveIntegerField(default=0)),
                ('monthly_points', models.JSONField(blank=True, default=dict)),
                ('level', models.CharField(default='Aprendiz Creativo', max_length=50)),
                ('joined_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('last_active', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'ordering': ['-total_points', 'username'],
            },
        ),
        migrations.CreateModel(
            name='Submission',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('submission_id', models.CharField(max_length=100, unique=True)),
                ('username', models.CharField(blank=True, max_length=150)),
                ('category', models.CharField(choices=[('learning', 'Aprendizaje'), ('brand', 'Marca Personal'), ('results', 'Resultados'), ('monetization', 'Monetización')], max_length=20)),
                ('points', models.PositiveIntegerField(default=0)),
                ('evidence_type', models.CharField(choices=[('image', 'Image'), ('video', 'Video'), ('link', 'Link'), ('drive_file', 'Drive file')], default='link', max_length=12)),
                ('evidence_url', models.URLField(blank=True, max_length=1000)),
                ('evidence_preview', models.URLField(blank=True, max_length=1000)),
                ('platform', models.CharField(blank=True, max_length=30)),
                ('file_name', models.CharField(blank=True, max_length=255)),
                ('file_size', models.PositiveBigIntegerField(default=0)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=10)),
                ('hall_of_fame_selected', models.BooleanField(default=False)),
                ('month_cycle', models.CharField(max_length=7)),
                ('submitted_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('reviewed_at', models.DateTimeField(blank=True, null=True)),
                ('reviewed_by', models.CharField(blank=True, max_length=150)),
                ('rejection_reason', models.CharField(blank=True, max_length=500)),
                ('toggled_at', models.DateTimeField(blank=True, null=True)),
                ('toggled_by', models.CharField(blank=True, max_length=150)),
                ('votes', models.PositiveIntegerField(default=0)),
                ('week_number', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('member', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='submissions', to='halloffame.member')),
            ],
            options={
                'ordering': ['-submitted_at', '-id'],
                'indexes': [
                    models.Index(fields=['status', 'hall_of_fame_selected'], name='submission_hof_idx'),
                    models.Index(fields=['month_cycle'], name='submission_month_idx'),
                ],
            },
        ),
    ]
