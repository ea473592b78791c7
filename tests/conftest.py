import pytest

from core.services import build_gate

from .fakes import FakeChainReader, TOKEN_CONTRACT, TREASURY


@pytest.fixture(autouse=True)
def payment_terms(settings):
	settings.MNEE_CONTRACT_ADDRESS = TOKEN_CONTRACT
	settings.TREASURY_ADDRESS = TREASURY
	settings.GENERATION_PRICE = "0.15"
	settings.PAYMENT_MAX_AGE_SECONDS = 300
	settings.CHAIN_READER_BACKEND = "stub"
	return settings


@pytest.fixture
def chain():
	return FakeChainReader()


@pytest.fixture
def gate(chain):
	return build_gate(chain)
