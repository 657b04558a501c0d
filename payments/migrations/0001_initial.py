from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('port', models.CharField(choices=[('NOVINPAL', 'Novinpal'), ('ZARINPAL', 'Zarinpal'), ('RAZORPAY', 'Razorpay')], help_text='Gateway this transaction was sent through', max_length=30)),
                ('price', models.BigIntegerField(help_text="Amount in the gateway's unit (e.g. rials, paise)")),
                ('ref_id', models.CharField(blank=True, db_index=True, help_text='Reference/authority token issued by the gateway', max_length=255, null=True)),
                ('tracking_code', models.CharField(blank=True, help_text='Receipt identifier issued by the gateway after payment', max_length=100, null=True)),
                ('card_number', models.CharField(blank=True, help_text='Masked card number of the payer', max_length=50, null=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('SUCCEEDED', 'Succeeded'), ('FAILED', 'Failed')], default='PENDING', help_text='Current state of the transaction', max_length=20)),
                ('ip', models.GenericIPAddressField(blank=True, help_text='IP address of the payer when the payment was started', null=True)),
                ('description', models.CharField(blank=True, default='', max_length=255)),
                ('payment_date', models.DateTimeField(blank=True, help_text='When the gateway confirmed the payment', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Transaction',
                'verbose_name_plural': 'Transactions',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='TransactionLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('result_code', models.CharField(blank=True, max_length=255, null=True)),
                ('result_message', models.TextField(blank=True, null=True)),
                ('log_date', models.DateTimeField(auto_now_add=True)),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='logs', to='payments.transaction')),
            ],
            options={
                'verbose_name': 'Transaction Log',
                'verbose_name_plural': 'Transaction Logs',
                'ordering': ['log_date', 'id'],
            },
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['port', 'status'], name='payments_tx_port_status_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['status', 'created_at'], name='payments_tx_status_created_idx'),
        ),
    ]
