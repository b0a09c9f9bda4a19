from celery import shared_task

from queue_management.services import QueueOrderingEngine


@shared_task
def reconcile_active_queues():  # Periodic task re-ranking every active therapy queue
    summary = QueueOrderingEngine.reconcile_active_queues()
    return (
        f"Reconciled {summary['queues_processed']} queues, "
        f"{summary['entries_repositioned']} entries repositioned, "
        f"{len(summary['failed_queues'])} failed"
    )
