# accounting/models/account.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.balance_guard import balance_writes_allowed

MAX_HIERARCHY_DEPTH = 64


class Account(models.Model):
    """
    A node in the chart-of-accounts tree.

    Guarantees:
    - Account codes are globally unique and never change after registration
    - Code + name are normalized (trimmed)
    - current_balance is only written while the posting engine's barrier is open
    - Accounts are never deleted; deactivation is the only retirement path
    - Hierarchy is stored as parent id; traversal walks ids with a cycle guard
    """

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (REVENUE, "Revenue"),
        (EXPENSE, "Expense"),
    ]

    DEBIT_NORMAL_TYPES = (ASSET, EXPENSE)

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    SIDES = [
        (DEBIT, "Debit"),
        (CREDIT, "Credit"),
    ]

    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=150)

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPES,
    )

    category = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Free classification, e.g. CURRENT_ASSET, OPERATING_EXPENSE",
    )

    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="children",
    )

    is_group = models.BooleanField(
        default=False,
        help_text="Group accounts only aggregate children and never receive postings",
    )
    is_control = models.BooleanField(
        default=False,
        help_text="Control accounts summarize a subsidiary ledger",
    )

    opening_balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    opening_balance_side = models.CharField(
        max_length=6,
        choices=SIDES,
        default=DEBIT,
    )

    current_balance = models.DecimalField(
        max_digits=18,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Signed balance on the account's natural side",
    )

    is_active = models.BooleanField(default=True)
    posting_halted = models.BooleanField(
        default=False,
        help_text="Set when a consistency check failed; blocks further postings",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["account_type"], name="account_type_idx"),
            models.Index(fields=["is_active"], name="account_is_active_idx"),
            models.Index(fields=["parent"], name="account_parent_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
            models.CheckConstraint(
                condition=Q(opening_balance__gte=0),
                name="chk_account_opening_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    # ----------------------------------------
    # Natural side
    # ----------------------------------------

    @property
    def is_debit_normal(self) -> bool:
        return self.account_type in self.DEBIT_NORMAL_TYPES

    @property
    def normal_side(self) -> str:
        return self.DEBIT if self.is_debit_normal else self.CREDIT

    @property
    def signed_opening_balance(self) -> Decimal:
        """Opening balance expressed on the natural side (negative when opposite)."""
        amount = self.opening_balance or Decimal("0.00")
        if self.opening_balance_side == self.normal_side:
            return amount
        return -amount

    # ----------------------------------------
    # Hierarchy (id walk)
    # ----------------------------------------

    def ancestors(self) -> list["Account"]:
        """Parents from nearest to root."""
        chain: list[Account] = []
        seen = {self.pk}
        parent_id = self.parent_id

        while parent_id is not None:
            if parent_id in seen or len(chain) >= MAX_HIERARCHY_DEPTH:
                raise ValidationError(f"Account hierarchy cycle detected at {self.code}")
            seen.add(parent_id)
            parent = Account.objects.only("id", "code", "name", "parent_id").get(pk=parent_id)
            chain.append(parent)
            parent_id = parent.parent_id

        return chain

    def level(self) -> int:
        return len(self.ancestors())

    def full_path(self) -> str:
        names = [a.name for a in reversed(self.ancestors())]
        names.append(self.name)
        return " > ".join(names)

    # ----------------------------------------
    # Persistence guards
    # ----------------------------------------

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()
        self.category = (self.category or "").strip().upper()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")
        if self.pk and self.parent_id == self.pk:
            raise ValidationError("Account cannot be its own parent")

    def save(self, *args, **kwargs):
        if self.pk:
            stored = (
                Account.objects.filter(pk=self.pk)
                .values("code", "current_balance")
                .first()
            )
            if stored is not None:
                if stored["code"] != self.code:
                    raise ValidationError("Account code is immutable once registered")
                if stored["current_balance"] != self.current_balance and not balance_writes_allowed():
                    raise ValidationError(
                        "Account balance can only be changed by the posting engine"
                    )

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Accounts cannot be deleted; deactivate them instead")
