from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Milestone',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('escrow_key', models.CharField(db_index=True, max_length=128)),
                ('index', models.PositiveIntegerField()),
                ('description', models.TextField()),
                ('amount', models.PositiveBigIntegerField()),
                ('due_date', models.DateTimeField()),
                ('completed', models.BooleanField(default=False)),
                ('approved', models.BooleanField(default=False)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'ordering': ['escrow_key', 'index'],
                'unique_together': {('escrow_key', 'index')},
            },
        ),
    ]
