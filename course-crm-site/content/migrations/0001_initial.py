from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ContentItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('section', models.CharField(max_length=60)),
                ('key', models.CharField(max_length=80)),
                ('kind', models.CharField(choices=[('text', 'Text'), ('image', 'Image'), ('video', 'Video')], default='text', max_length=10)),
                ('label', models.CharField(blank=True, max_length=150)),
                ('value', models.TextField(blank=True)),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='content_changes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['section', 'position', 'key'],
                'constraints': [
                    models.UniqueConstraint(fields=('section', 'key'), name='content_section_key_uniq'),
                ],
            },
        ),
    ]
