import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('adlinks', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='adlink',
            name='slug',
            field=models.CharField(max_length=50, unique=True, validators=[
                django.core.validators.MinLengthValidator(3),
                django.core.validators.RegexValidator(
                    '^[a-z0-9-]+$',
                    message='El slug debe contener solo letras, números y guiones (3-50 caracteres)'),
            ]),
        ),
    ]
