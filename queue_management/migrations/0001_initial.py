import django.db.models.deletion
import django.utils.timezone
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='TherapyQueue',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('clinic_id', models.CharField(db_index=True, max_length=64)),
                ('therapy_type', models.CharField(choices=[('SHODHANA', 'Shodhana (purification)'), ('SHAMANA', 'Shamana (palliative)'), ('RASAYANA', 'Rasayana (rejuvenation)'), ('VAJIKARANA', 'Vajikarana (aphrodisiac)')], max_length=20)),
                ('queue_name', models.CharField(max_length=255)),
                ('is_active', models.BooleanField(default=True)),
                ('max_capacity', models.PositiveIntegerField(default=10)),
                ('current_position', models.PositiveIntegerField(default=0)),
                ('estimated_wait_time', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'therapy_queues',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['clinic_id', 'therapy_type'], name='therapy_queue_clinic_type_idx'),
                    models.Index(fields=['is_active'], name='therapy_queue_active_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('is_active', True)), fields=('clinic_id', 'therapy_type'), name='unique_active_queue_per_therapy_type'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QueueEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('patient_id', models.CharField(db_index=True, max_length=64)),
                ('appointment_id', models.CharField(blank=True, db_index=True, max_length=64, null=True)),
                ('position', models.PositiveIntegerField(blank=True, null=True)),
                ('priority', models.IntegerField(default=0)),
                ('status', models.CharField(choices=[('WAITING', 'Waiting'), ('IN_PROGRESS', 'In Progress'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled'), ('NO_SHOW', 'No Show'), ('REMOVED', 'Removed')], default='WAITING', max_length=20)),
                ('estimated_wait_time', models.PositiveIntegerField(blank=True, null=True)),
                ('actual_wait_time', models.PositiveIntegerField(blank=True, null=True)),
                ('booking_number', models.PositiveIntegerField(default=0)),
                ('checked_in_at', models.DateTimeField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('queue', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='entries', to='queue_management.therapyqueue')),
            ],
            options={
                'verbose_name_plural': 'queue entries',
                'db_table': 'therapy_queue_entries',
                'ordering': ['position', 'created_at'],
                'indexes': [
                    models.Index(fields=['queue', 'status'], name='queue_entry_queue_status_idx'),
                    models.Index(fields=['position'], name='queue_entry_position_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['WAITING', 'IN_PROGRESS'])), fields=('queue', 'patient_id'), name='unique_active_entry_per_patient'),
                ],
            },
        ),
    ]
