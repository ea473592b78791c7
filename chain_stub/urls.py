from django.urls import path
from .views import get_balance, get_transaction, transfer, faucet


urlpatterns = [
	path("balance/<str:address>", get_balance),
	path("tx/<str:tx_hash>", get_transaction),
	path("transfer", transfer),
	path("faucet", faucet),
]
