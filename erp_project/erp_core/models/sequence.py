from django.db import models
from .company import Company


# ---------- Document number counters ----------
class DocumentSequence(models.Model):
    """
    One row per (company, document type, year, month).
    - last_value is the last sequence handed out for that period
    - month = 0 for yearly series (payment numbers)
    - rows are only ever touched under select_for_update()
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    document_type = models.CharField(max_length=20)  # INVOICE, BILL, PAYMENT
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField(default=0)
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "document_type", "year", "month"],
                name="uq_document_sequence_period",
            )
        ]

    def __str__(self):
        return (f"{self.document_type} {self.year}-{self.month:02d}"
                f" @ {self.last_value}")
