import pytest

from qrpay.core.config import Settings
from qrpay.models.payment import PaymentProfile
from qrpay.services.cache import PayloadCache
from qrpay.services.session import PaymentSession
from tests.fakes import FakeRenderer


@pytest.fixture
def profile() -> PaymentProfile:
    return PaymentProfile(
        legal_name="IP Petrov | Pavel\nPetrovich",
        account_number="40802810100000000001",
        payee_inn="270000000001",
        bank_name="AO \\Test Bank\\",
        bic="044525974",
        corr_account="30101810145250000974",
    )


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def cache() -> PayloadCache:
    return PayloadCache(capacity=10)


@pytest.fixture
def session(profile, renderer, cache) -> PaymentSession:
    return PaymentSession(profile=profile, renderer=renderer, cache=cache)


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings(
        data_dir=tmp_path,
        db_filename="qrpay-test.sqlite3",
        debug=False,
        stats_flush_interval_seconds=3600,
    )
    s.init_post_load()
    return s
