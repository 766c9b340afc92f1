# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

# Canonical ViewSets live in accounting/api/view.py (singular) in this project.
# We import directly to avoid circular imports through views/__init__.py.
from accounting.api.view import AccountViewSet, JournalEntryViewSet, LedgerEntryViewSet
from accounting.api.views.accounts import AccountBalanceView
from accounting.api.views.trial_balance import TrialBalanceView

router = DefaultRouter()
router.register("accounts", AccountViewSet, basename="account")
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")
router.register("ledger-entries", LedgerEntryViewSet, basename="ledger-entry")

urlpatterns = [
    path(
        "accounts/<str:code>/balance/",
        AccountBalanceView.as_view(),
        name="account-balance",
    ),
    # Router endpoints
    path("", include(router.urls)),
    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
]
