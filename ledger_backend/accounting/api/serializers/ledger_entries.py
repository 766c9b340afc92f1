# accounting/api/serializers/ledger_entries.py

from rest_framework import serializers

from accounting.models.ledger import LedgerEntry


class LedgerEntrySerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    period_code = serializers.CharField(source="period.code", read_only=True)
    journal_number = serializers.CharField(source="journal_entry.number", read_only=True)

    class Meta:
        model = LedgerEntry
        fields = (
            "id",
            "transaction_date",
            "period_code",
            "account",
            "account_code",
            "journal_entry",
            "journal_number",
            "journal_line",
            "description",
            "debit",
            "credit",
            "balance",
            "source_type",
            "source_id",
            "created_at",
        )
        read_only_fields = fields
