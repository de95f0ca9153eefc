from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('sales', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='salestatushistory',
            name='action',
            field=models.CharField(choices=[('sale_created', 'Sale created'), ('sale_updated', 'Sale updated'), ('payment_added', 'Payment added'), ('access_granted', 'Access granted'), ('access_updated', 'Access updated'), ('access_revoked', 'Access revoked'), ('exemption_granted', 'Exemption granted')], max_length=20),
        ),
    ]
