import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def mark_overdue_invoices(company_id):
    """Flag UNPAID/PARTIAL invoices of one company whose due date passed."""
    # import lazily to avoid circular imports at module import time
    from .models import Company
    from .services.invoices import mark_overdue

    company = Company.objects.filter(pk=company_id).first()
    if company is None:
        logger.warning("mark_overdue_invoices: company %s does not exist", company_id)
        return 0
    return mark_overdue(company)


@shared_task
def mark_all_overdue_invoices():
    """Fan out one overdue sweep per company (for a daily beat schedule)."""
    from .models import Company

    company_ids = list(Company.objects.values_list("pk", flat=True))
    for company_id in company_ids:
        mark_overdue_invoices.delay(company_id)
    return len(company_ids)
