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
            name='Escrow',
            fields=[
                ('id', models.CharField(max_length=128, primary_key=True, serialize=False)),
                ('amount', models.PositiveBigIntegerField()),
                ('platform_fee', models.PositiveBigIntegerField()),
                ('freelancer_amount', models.PositiveBigIntegerField()),
                ('fee_percent', models.PositiveSmallIntegerField()),
                ('settled_amount', models.PositiveBigIntegerField(default=0)),
                ('status', models.CharField(choices=[('created', 'Created'), ('funded', 'Funded'), ('work_in_progress', 'Work In Progress'), ('work_completed', 'Work Completed'), ('disputed', 'Disputed'), ('released', 'Released'), ('refunded', 'Refunded'), ('cancelled', 'Cancelled')], default='created', max_length=20)),
                ('created_at', models.DateTimeField()),
                ('deadline', models.DateTimeField()),
                ('client_approved', models.BooleanField(default=False)),
                ('freelancer_completed', models.BooleanField(default=False)),
                ('is_token_escrow', models.BooleanField(default=False)),
                ('token', models.CharField(blank=True, max_length=128)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='client_escrows', to=settings.AUTH_USER_MODEL)),
                ('freelancer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='freelancer_escrows', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PlatformConfig',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('fee_percent', models.PositiveSmallIntegerField()),
                ('platform_wallet', models.CharField(max_length=128)),
                ('token', models.CharField(blank=True, max_length=128)),
                ('paused', models.BooleanField(default=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('arbitrator', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='EscrowEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('event', models.CharField(choices=[('escrow_created', 'Escrow Created'), ('escrow_funded', 'Escrow Funded'), ('work_started', 'Work Started'), ('work_completed', 'Work Completed'), ('funds_released', 'Funds Released'), ('funds_refunded', 'Funds Refunded'), ('dispute_raised', 'Dispute Raised'), ('dispute_resolved', 'Dispute Resolved'), ('milestone_completed', 'Milestone Completed'), ('milestone_approved', 'Milestone Approved'), ('emergency_withdrawal', 'Emergency Withdrawal'), ('platform_fee_updated', 'Platform Fee Updated'), ('platform_wallet_updated', 'Platform Wallet Updated'), ('token_updated', 'Token Updated'), ('paused', 'Paused'), ('unpaused', 'Unpaused')], max_length=40)),
                ('escrow_key', models.CharField(blank=True, db_index=True, max_length=128)),
                ('amount', models.PositiveBigIntegerField(blank=True, null=True)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='escrow_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['id'],
            },
        ),
    ]
