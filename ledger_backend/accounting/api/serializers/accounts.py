# accounting/api/serializers/accounts.py

from rest_framework import serializers

from accounting.models.account import Account


class AccountListSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for listing accounts.
    UI needs: code, name, type, hierarchy and running balance.
    """

    parent_code = serializers.CharField(source="parent.code", read_only=True, default=None)
    normal_side = serializers.CharField(read_only=True)

    class Meta:
        model = Account
        fields = (
            "id",
            "code",
            "name",
            "account_type",
            "category",
            "parent_code",
            "is_group",
            "is_control",
            "normal_side",
            "current_balance",
            "is_active",
            "posting_halted",
        )
        read_only_fields = fields


class AccountBalanceSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    code = serializers.CharField()
    name = serializers.CharField()
    account_type = serializers.CharField()
    normal_side = serializers.CharField()
    balance = serializers.DecimalField(max_digits=18, decimal_places=2)
    as_of = serializers.DateField(allow_null=True)
