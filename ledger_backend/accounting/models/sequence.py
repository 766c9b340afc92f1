# accounting/models/sequence.py

from django.db import models


class NumberSequence(models.Model):
    """Gap-free counters for human-facing document numbers (JE-000001, BR-000001)."""

    name = models.CharField(max_length=50, unique=True)
    next_value = models.PositiveBigIntegerField(default=1)

    class Meta:
        verbose_name = "Number Sequence"
        verbose_name_plural = "Number Sequences"

    def __str__(self):
        return f"{self.name}: {self.next_value}"
