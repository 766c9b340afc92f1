# accounting/api/serializers/trial_balance.py

from rest_framework import serializers

from accounting.models.trial_balance import TrialBalanceLine


class TrialBalanceLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)
    account_type = serializers.CharField(source="account.account_type", read_only=True)

    class Meta:
        model = TrialBalanceLine
        fields = (
            "account_code",
            "account_name",
            "account_type",
            "opening_debit",
            "opening_credit",
            "period_debit",
            "period_credit",
            "closing_debit",
            "closing_credit",
            "generated_at",
        )
        read_only_fields = fields
