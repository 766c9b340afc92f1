# accounting/api/serializers/journal_entries.py

from rest_framework import serializers

from accounting.models.journal import JournalEntry, JournalEntryLine


class JournalEntryLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)

    class Meta:
        model = JournalEntryLine
        fields = (
            "line_number",
            "account",
            "account_code",
            "debit",
            "credit",
            "description",
            "cost_center",
            "dimension1",
            "dimension2",
        )
        read_only_fields = fields


class JournalEntrySerializer(serializers.ModelSerializer):
    lines = JournalEntryLineSerializer(many=True, read_only=True)
    period_code = serializers.CharField(source="period.code", read_only=True, default=None)
    reversal_of_number = serializers.CharField(source="reversal_of.number", read_only=True, default=None)

    class Meta:
        model = JournalEntry
        fields = (
            "id",
            "number",
            "entry_date",
            "entry_type",
            "status",
            "description",
            "source_type",
            "source_id",
            "source_reference",
            "total_debit",
            "total_credit",
            "period_code",
            "submitted_at",
            "approved_at",
            "posted_at",
            "cancelled_at",
            "reversal_of_number",
            "reversed_at",
            "lines",
        )
        read_only_fields = fields
