from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('leads', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Sale',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product', models.CharField(choices=[('acceso_curso', 'Acceso al curso'), ('others', 'Otros')], default='acceso_curso', max_length=20)),
                ('payment_plan', models.CharField(choices=[('1_pago', '1 pago'), ('2_pagos', '2 pagos'), ('3_pagos', '3 pagos'), ('custom', 'Custom')], default='1_pago', max_length=10)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10)),
                ('access_granted', models.BooleanField(default=False)),
                ('access_start_date', models.DateTimeField(blank=True, null=True)),
                ('access_end_date', models.DateTimeField(blank=True, null=True)),
                ('exemption_granted', models.BooleanField(default=False)),
                ('exemption_reason', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('exemption_granted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='granted_exemptions', to=settings.AUTH_USER_MODEL)),
                ('lead', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='sale', to='leads.lead')),
                ('sale_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sales', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['product'], name='sale_product_idx'),
                    models.Index(fields=['access_granted'], name='sale_access_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PaymentProof',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('image_url', models.URLField(blank=True, max_length=500)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('uploaded_at', models.DateTimeField()),
                ('sale', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payment_proofs', to='sales.sale')),
                ('uploaded_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payment_proofs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['uploaded_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='SaleStatusHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('sale_created', 'Sale created'), ('payment_added', 'Payment added'), ('access_granted', 'Access granted'), ('access_updated', 'Access updated'), ('access_revoked', 'Access revoked'), ('exemption_granted', 'Exemption granted')], max_length=20)),
                ('details', models.CharField(blank=True, max_length=500)),
                ('amount', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('performed_at', models.DateTimeField()),
                ('performed_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sale_status_changes', to=settings.AUTH_USER_MODEL)),
                ('sale', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_history', to='sales.sale')),
            ],
            options={
                'verbose_name_plural': 'sale status history',
                'ordering': ['performed_at', 'id'],
            },
        ),
    ]
