from django.core.management.base import BaseCommand, CommandError

from queue_management.exceptions import QueueError
from queue_management.services import QueueOrderingEngine


class Command(BaseCommand):
    help = 'Recompute dense positions for every active therapy queue, or a single one'

    def add_arguments(self, parser):
        parser.add_argument('--queue', dest='queue_id', help='Only reorder this queue ID')

    def handle(self, *args, **options):
        queue_id = options.get('queue_id')

        if queue_id:
            try:
                entries = QueueOrderingEngine.reorder(queue_id, actor='manage.py')
            except QueueError as e:
                raise CommandError(e.message)
            self.stdout.write(self.style.SUCCESS(f"Queue {queue_id}: {len(entries)} active entries ranked"))
            return

        summary = QueueOrderingEngine.reconcile_active_queues()
        self.stdout.write(self.style.SUCCESS(
            f"Reconciled {summary['queues_processed']} queues, "
            f"{summary['entries_repositioned']} entries repositioned"
        ))
        for failed in summary['failed_queues']:
            self.stdout.write(self.style.ERROR(f"Failed: {failed}"))
